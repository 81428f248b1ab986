import re
from collections.abc import Mapping
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .exceptions import InvalidHeader

if TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["HeaderBag"]


_TYPE_HEADER_VALUE = Union[str, int, Sequence[Union[str, int]]]
_TYPE_HEADERS = Union[
    Mapping[str, _TYPE_HEADER_VALUE], Iterable[Tuple[str, _TYPE_HEADER_VALUE]]
]

# RFC 7230 section 3.2.6 token
_HEADER_NAME_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_CONTAINS_CONTROL_CHAR_RE = re.compile(r"[\r\n\x00]")


def _validate_lookup_name(name: object) -> str:
    # Lookups accept any casing of a stored name but still require a str.
    if not isinstance(name, str):
        raise InvalidHeader(
            f"Header name must be a string, not {type(name).__name__}"
        )
    return name


def _validate_name(name: object) -> str:
    name = _validate_lookup_name(name)
    if not _HEADER_NAME_RE.fullmatch(name):
        raise InvalidHeader(f"Invalid header name {name!r}")
    return name


def _normalize_value(name: str, value: _TYPE_HEADER_VALUE) -> List[str]:
    """
    Turns a header value into a non-empty list of strings with surrounding
    spaces and tabs stripped.
    """
    values: Sequence[Union[str, int]]
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            raise InvalidHeader(f"Header value for {name!r} can not be an empty list")
        values = value
    else:
        values = [value]  # type: ignore[list-item]

    normalized = []
    for val in values:
        # bool is an int, but "True" is never what the caller meant.
        if isinstance(val, bool) or not isinstance(val, (str, int)):
            raise InvalidHeader(
                f"Header value for {name!r} must be str or int, "
                f"not {type(val).__name__}"
            )
        val = str(val).strip(" \t")
        if _CONTAINS_CONTROL_CHAR_RE.search(val):
            raise InvalidHeader(f"Invalid header value for {name!r}: {val!r}")
        try:
            val.encode("latin-1")
        except UnicodeEncodeError:
            raise InvalidHeader(
                f"Header value for {name!r} must be encodable as latin-1: {val!r}"
            ) from None
        normalized.append(val)
    return normalized


class HeaderBag(Mapping):  # type: ignore[type-arg]
    """
    :param headers:
        A mapping or an iterable of field-value pairs. Values may be a
        single string or a list of strings. Repeated field names are
        added together rather than overwritten.

    An immutable, ``dict`` like container for storing HTTP Headers.

    Field names are stored and compared case-insensitively in compliance with
    RFC 7230. Iteration provides the case-sensitive name most recently set
    for each case-insensitive key, in insertion order.

    :meth:`set`, :meth:`add` and :meth:`remove` never modify the bag they
    are called on, they return a new one instead (or the same bag if
    nothing would change).

    >>> headers = HeaderBag({'Content-Length': '7'})
    >>> headers = headers.add('Set-Cookie', 'foo=bar')
    >>> headers = headers.add('set-cookie', 'baz=quxx')
    >>> headers['SET-cookie']
    'foo=bar, baz=quxx'
    >>> headers.getlist('set-cookie')
    ['foo=bar', 'baz=quxx']
    >>> headers['content-length']
    '7'
    """

    _container: Dict[str, List[str]]

    def __init__(self, headers: Optional[_TYPE_HEADERS] = None) -> None:
        super().__init__()
        # lower-cased name -> [ExactName, value, value, ...]
        self._container = {}
        if headers is not None:
            if isinstance(headers, HeaderBag):
                self._copy_from(headers)
            else:
                self._extend(headers)

    def __getitem__(self, key: str) -> str:
        if not isinstance(key, str):
            raise KeyError(key)
        val = self._container[key.lower()]
        return ", ".join(val[1:])

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return key.lower() in self._container
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping) and not hasattr(other, "keys"):
            return False
        if not isinstance(other, HeaderBag):
            try:
                other = type(self)(other)  # type: ignore[arg-type]
            except InvalidHeader:
                return False
        return {k.lower(): v for k, v in self.itermerged()} == {
            k.lower(): v for k, v in other.itermerged()
        }

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return len(self._container)

    def __iter__(self) -> Iterator[str]:
        # Only provide the originally cased names
        for vals in self._container.values():
            yield vals[0]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.itermerged())})"

    def getlist(self, key: str) -> List[str]:
        """Returns a list of all the values for the named field. Returns an
        empty list if the key doesn't exist."""
        key = _validate_lookup_name(key)
        try:
            vals = self._container[key.lower()]
        except KeyError:
            return []
        else:
            return vals[1:]

    def get_line(self, key: str) -> str:
        """Returns all values of the named field joined by ``", "``, or an
        empty string if the key doesn't exist."""
        return ", ".join(self.getlist(key))

    def set(self, key: str, val: _TYPE_HEADER_VALUE) -> "Self":
        """Returns a bag where ``key`` holds exactly ``val``, replacing any
        field that compares equal case-insensitively.

        >>> headers = HeaderBag({'content-type': 'text/plain'})
        >>> headers.set('Content-Type', 'text/html')
        HeaderBag({'Content-Type': 'text/html'})
        """
        key = _validate_name(key)
        values = _normalize_value(key, val)
        if self._container.get(key.lower()) == [key] + values:
            return self
        clone = self.copy()
        clone._set(key, values)
        return clone

    def add(self, key: str, val: _TYPE_HEADER_VALUE) -> "Self":
        """Returns a bag with ``val`` appended to the values of ``key``,
        keeping any that already exist.

        >>> headers = HeaderBag({'foo': 'bar'})
        >>> headers.add('Foo', 'baz')['foo']
        'bar, baz'
        """
        key = _validate_name(key)
        values = _normalize_value(key, val)
        clone = self.copy()
        clone._add(key, values)
        return clone

    def remove(self, key: str) -> "Self":
        """Returns a bag without ``key``. Removing a field that isn't
        present returns the bag unchanged."""
        key = _validate_lookup_name(key)
        if key.lower() not in self._container:
            return self
        clone = self.copy()
        del clone._container[key.lower()]
        return clone

    def copy(self) -> "Self":
        clone = type(self)()
        clone._copy_from(self)
        return clone

    def iteritems(self) -> Iterator[Tuple[str, str]]:
        """Iterate over all header lines, including duplicate ones."""
        for vals in self._container.values():
            for val in vals[1:]:
                yield vals[0], val

    def itermerged(self) -> Iterator[Tuple[str, str]]:
        """Iterate over all headers, merging duplicate ones together."""
        for vals in self._container.values():
            yield vals[0], ", ".join(vals[1:])

    def as_dict(self) -> Dict[str, List[str]]:
        """Returns a plain ``dict`` of exact-case names to value lists."""
        return {vals[0]: vals[1:] for vals in self._container.values()}

    def _set(self, key: str, values: List[str]) -> None:
        # Re-inserting moves a renamed field to the end, as a fresh field
        # would be. Same-case replacement keeps its slot.
        key_lower = key.lower()
        existing = self._container.get(key_lower)
        if existing is not None and existing[0] != key:
            del self._container[key_lower]
        self._container[key_lower] = [key] + values

    def _add(self, key: str, values: List[str]) -> None:
        key_lower = key.lower()
        new_vals = [key] + values
        # Keep the common case aka no item present as fast as possible
        vals = self._container.setdefault(key_lower, new_vals)
        if new_vals is not vals:
            vals.extend(values)

    def _extend(self, other: _TYPE_HEADERS) -> None:
        if isinstance(other, Mapping):
            for key in other:
                self._add(_validate_name(key), _normalize_value(key, other[key]))
        elif hasattr(other, "keys"):
            for key in other.keys():
                self._add(_validate_name(key), _normalize_value(key, other[key]))
        else:
            for key, value in other:
                self._add(_validate_name(key), _normalize_value(key, value))

    def _copy_from(self, other: "HeaderBag") -> None:
        for key_lower, vals in other._container.items():
            self._container[key_lower] = list(vals)
