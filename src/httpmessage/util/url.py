import re
import string
import typing
from typing import TYPE_CHECKING, Dict, Optional, Union
from urllib.parse import quote

from ..exceptions import LocationParseError, LocationValueError
from .util import to_str

if TYPE_CHECKING:
    from typing_extensions import Self

# Ports left out of the authority when they match the scheme.
DEFAULT_PORTS: Dict[str, int] = {"http": 80, "https": 443}
DEFAULT_HTTP_HOST = "localhost"

# Almost all of these patterns were derived from the
# 'rfc3986' module: https://github.com/python-hyper/rfc3986
_URI_RE = re.compile(
    r"^(?:([a-zA-Z][a-zA-Z0-9+.-]*):)?"
    r"(?://([^\\/?#]*))?"
    r"([^?#]*)"
    r"(?:\?([^#]*))?"
    r"(?:#(.*))?$",
    re.UNICODE | re.DOTALL,
)

_IPV4_PAT = r"(?:[0-9]{1,3}\.){3}[0-9]{1,3}"
_HEX_PAT = "[0-9A-Fa-f]{1,4}"
_LS32_PAT = "(?:{hex}:{hex}|{ipv4})".format(hex=_HEX_PAT, ipv4=_IPV4_PAT)
_subs = {"hex": _HEX_PAT, "ls32": _LS32_PAT}
_variations = [
    #                            6( h16 ":" ) ls32
    "(?:%(hex)s:){6}%(ls32)s",
    #                       "::" 5( h16 ":" ) ls32
    "::(?:%(hex)s:){5}%(ls32)s",
    # [               h16 ] "::" 4( h16 ":" ) ls32
    "(?:%(hex)s)?::(?:%(hex)s:){4}%(ls32)s",
    # [ *1( h16 ":" ) h16 ] "::" 3( h16 ":" ) ls32
    "(?:(?:%(hex)s:)?%(hex)s)?::(?:%(hex)s:){3}%(ls32)s",
    # [ *2( h16 ":" ) h16 ] "::" 2( h16 ":" ) ls32
    "(?:(?:%(hex)s:){0,2}%(hex)s)?::(?:%(hex)s:){2}%(ls32)s",
    # [ *3( h16 ":" ) h16 ] "::"    h16 ":"   ls32
    "(?:(?:%(hex)s:){0,3}%(hex)s)?::%(hex)s:%(ls32)s",
    # [ *4( h16 ":" ) h16 ] "::"              ls32
    "(?:(?:%(hex)s:){0,4}%(hex)s)?::%(ls32)s",
    # [ *5( h16 ":" ) h16 ] "::"              h16
    "(?:(?:%(hex)s:){0,5}%(hex)s)?::%(hex)s",
    # [ *6( h16 ":" ) h16 ] "::"
    "(?:(?:%(hex)s:){0,6}%(hex)s)?::",
]

_UNRESERVED_CHARS = string.ascii_letters + string.digits + "._-~"
_UNRESERVED_PAT = re.escape(_UNRESERVED_CHARS)
_IPV6_PAT = "(?:" + "|".join([x % _subs for x in _variations]) + ")"
_ZONE_ID_PAT = "(?:%25|%)(?:[" + _UNRESERVED_PAT + "]|%[a-fA-F0-9]{2})+"
_IPV6_ADDRZ_PAT = r"\[" + _IPV6_PAT + r"(?:" + _ZONE_ID_PAT + r")?\]"
_REG_NAME_PAT = r"(?:[^\[\]%:/?#]|%[a-fA-F0-9]{2})*"

_SUBAUTHORITY_PAT = ("^(?:(.*)@)?(%s|%s|%s)(?::([0-9]*))?$") % (
    _REG_NAME_PAT,
    _IPV4_PAT,
    _IPV6_ADDRZ_PAT,
)
_SUBAUTHORITY_RE = re.compile(_SUBAUTHORITY_PAT, re.UNICODE | re.DOTALL)

_SUB_DELIM_CHARS = "!$&'()*+,;="
# A user name or password on its own, where ':' is the separator.
_USERINFO_PART_CHARS = _UNRESERVED_CHARS + _SUB_DELIM_CHARS
_USERINFO_CHARS = _USERINFO_PART_CHARS + ":"
_PATH_CHARS = _USERINFO_PART_CHARS + ":@/"
_QUERY_CHARS = _FRAGMENT_CHARS = _PATH_CHARS + "?"


def _compile_encoder(allowed_chars: str) -> "re.Pattern[str]":
    # A run of characters outside of the allowed set, or a '%' that does
    # not start a percent-encoded octet.
    return re.compile("[^%%%s]+|%%(?![a-fA-F0-9]{2})" % re.escape(allowed_chars))


_USERINFO_PART_ENCODER = _compile_encoder(_USERINFO_PART_CHARS)
_USERINFO_ENCODER = _compile_encoder(_USERINFO_CHARS)
_PATH_ENCODER = _compile_encoder(_PATH_CHARS)
_QUERY_ENCODER = _compile_encoder(_QUERY_CHARS)


def _encode_invalid_chars(component: str, encoder: "re.Pattern[str]") -> str:
    """Percent-encodes a URI component without double encoding anything.

    A ``%`` that already starts a valid ``%XX`` octet is left alone, any
    other ``%`` becomes ``%25``.
    """
    return encoder.sub(lambda match: quote(match.group(0), safe=""), component)


def encode_userinfo(component: str) -> str:
    return _encode_invalid_chars(component, _USERINFO_ENCODER)


def _encode_userinfo_part(component: str) -> str:
    return _encode_invalid_chars(component, _USERINFO_PART_ENCODER)


def encode_path(component: str) -> str:
    return _encode_invalid_chars(component, _PATH_ENCODER)


def encode_query(component: str) -> str:
    return _encode_invalid_chars(component, _QUERY_ENCODER)


encode_fragment = encode_query


def _filter_str(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise LocationValueError(
            f"{name} must be a string, not {type(value).__name__}"
        )
    return value


def _filter_port(port: Union[int, str, None]) -> Optional[int]:
    if port is None:
        return None
    try:
        port_int = int(port)
    except (TypeError, ValueError):
        raise LocationValueError(f"Invalid port: {port!r}") from None
    if not 1 <= port_int <= 0xFFFF:
        raise LocationValueError(
            f"Invalid port: {port_int}. Must be between 1 and 65535"
        )
    return port_int


def _make_userinfo(user: str, password: Optional[str]) -> str:
    if not _filter_str("User", user):
        return ""
    if password:
        return (
            _encode_userinfo_part(user)
            + ":"
            + _encode_userinfo_part(_filter_str("Password", password))
        )
    return _encode_userinfo_part(user)


def compose_components(
    scheme: str, authority: str, path: str, query: str, fragment: str
) -> str:
    """
    Assemble a URI string from already encoded components.

    The ``//`` authority marker is written whenever there is an authority,
    and always for the ``file`` scheme.

    Example::

        >>> compose_components('https', 'example.com', '/a', 'b=1', '')
        'https://example.com/a?b=1'
        >>> compose_components('file', '', '/etc/hosts', '', '')
        'file:///etc/hosts'
    """
    uri = ""

    if scheme:
        uri += scheme + ":"
    if authority or scheme == "file":
        uri += "//" + authority
    uri += path
    if query:
        uri += "?" + query
    if fragment:
        uri += "#" + fragment

    return uri


class Uri(
    typing.NamedTuple(
        "Uri",
        [
            ("scheme", str),
            ("userinfo", str),
            ("host", str),
            ("port", Optional[int]),
            ("path", str),
            ("query", str),
            ("fragment", str),
        ],
    )
):
    """
    Immutable representation of a URI. Used as a return value for
    :func:`parse_uri`.

    Every component is normalized on construction: scheme and host are
    lower-cased, ``localhost`` is supplied as the host of an HTTP(S) URI
    without one, a port equal to the scheme's default is dropped, and the
    userinfo, path, query and fragment are percent-encoded. Existing
    percent-encoded octets are never encoded twice.

    The ``with_*`` methods return a new :class:`Uri`, or the same instance
    when the normalized value is unchanged.
    """

    DEFAULT_PORTS: typing.ClassVar[Dict[str, int]] = DEFAULT_PORTS
    DEFAULT_HTTP_HOST: typing.ClassVar[str] = DEFAULT_HTTP_HOST

    def __new__(  # type: ignore[no-untyped-def]
        cls,
        scheme: str = "",
        userinfo: str = "",
        host: str = "",
        port: Union[int, str, None] = None,
        path: str = "",
        query: str = "",
        fragment: str = "",
    ):
        scheme = _filter_str("Scheme", scheme).lower()
        host = _filter_str("Host", host).lower()
        if not host and scheme in ("http", "https"):
            host = cls.DEFAULT_HTTP_HOST
        port_int = _filter_port(port)
        if port_int is not None and cls.DEFAULT_PORTS.get(scheme) == port_int:
            port_int = None
        path = encode_path(_filter_str("Path", path))
        # A path following an authority is either empty or absolute.
        if path and not path.startswith("/") and (host or scheme == "file"):
            path = "/" + path
        return super().__new__(
            cls,
            scheme,
            encode_userinfo(_filter_str("User info", userinfo)),
            host,
            port_int,
            path,
            encode_query(_filter_str("Query", query)),
            encode_fragment(_filter_str("Fragment", fragment)),
        )

    @classmethod
    def _make(cls, iterable: typing.Iterable[typing.Any]) -> "Self":
        return cls(*iterable)

    def _replace(self, **kwargs: typing.Any) -> "Self":
        # Normalizes like every other way of building a Uri.
        return self._with(**kwargs)

    @property
    def authority(self) -> str:
        """``[userinfo@]host[:port]``, or an empty string without a host."""
        if not self.host:
            return ""
        authority = f"{self.userinfo}@{self.host}" if self.userinfo else self.host
        if self.port is None:
            return authority
        return f"{authority}:{self.port}"

    @property
    def url(self) -> str:
        """
        Convert self into a URI string.

        This round-trips with :func:`parse_uri` for URIs that are already
        in normalized form.

        Example: ::

            >>> U = parse_uri('https://Example.com:443/mail/?a=b c')
            >>> U.url
            'https://example.com/mail/?a=b%20c'
        """
        return compose_components(
            self.scheme, self.authority, self.path, self.query, self.fragment
        )

    def __str__(self) -> str:
        return self.url

    def _with(self, **kwargs: typing.Any) -> "Self":
        components = self._asdict()
        components.update(kwargs)
        new = type(self)(**components)
        return self if new == self else new

    def with_scheme(self, scheme: str) -> "Self":
        scheme = _filter_str("Scheme", scheme).lower()
        if scheme == self.scheme:
            return self
        # Re-evaluates the default host and port against the new scheme.
        return self._with(scheme=scheme)

    def with_user_info(self, user: str, password: Optional[str] = None) -> "Self":
        userinfo = _make_userinfo(user, password)
        if userinfo == self.userinfo:
            return self
        return self._with(userinfo=userinfo)

    def with_host(self, host: str) -> "Self":
        host = _filter_str("Host", host).lower()
        if host == self.host:
            return self
        return self._with(host=host)

    def with_port(self, port: Union[int, str, None]) -> "Self":
        port_int = _filter_port(port)
        if port_int == self.port:
            return self
        return self._with(port=port_int)

    def with_path(self, path: str) -> "Self":
        path = encode_path(_filter_str("Path", path))
        if path == self.path:
            return self
        return self._with(path=path)

    def with_query(self, query: str) -> "Self":
        query = encode_query(_filter_str("Query", query))
        if query == self.query:
            return self
        return self._with(query=query)

    def with_fragment(self, fragment: str) -> "Self":
        fragment = encode_fragment(_filter_str("Fragment", fragment))
        if fragment == self.fragment:
            return self
        return self._with(fragment=fragment)


def parse_uri(uri: Union[str, bytes]) -> Uri:
    """
    Given a URI string, return a parsed :class:`.Uri` namedtuple. Fields not
    present in the string are empty (``None`` for the port).

    This parser follows RFC 3986 and raises
    :class:`~httpmessage.exceptions.LocationParseError` for input it cannot
    make sense of, such as a malformed authority or an out-of-range port.

    :param uri: URI to parse into a :class:`.Uri` namedtuple.

    Example::

        >>> parse_uri('http://google.com/mail/')
        Uri(scheme='http', userinfo='', host='google.com', port=None, path='/mail/', ...)
        >>> parse_uri('HTTP://Example.com:80/x').url
        'http://example.com/x'
        >>> parse_uri('/foo?bar')
        Uri(scheme='', userinfo='', host='', port=None, path='/foo', query='bar', ...)
    """
    source_uri = uri
    uri = to_str(uri)
    if not uri:
        return Uri()

    match = _URI_RE.match(uri)
    if match is None:
        raise LocationParseError(to_str(source_uri))
    scheme, authority, path, query, fragment = match.groups()

    userinfo = ""
    host = ""
    port: Optional[str] = None
    if authority is not None:
        authority_match = _SUBAUTHORITY_RE.match(authority)
        if authority_match is None:
            raise LocationParseError(to_str(source_uri))
        userinfo, host, port = authority_match.groups()
        if not host:
            if (scheme or "").lower() != "file":
                raise LocationParseError(to_str(source_uri))
            # Without a host there is no authority to carry these.
            userinfo, port = "", None
        if port == "":
            port = None

    user = password = None
    if userinfo:
        user, sep, password = userinfo.partition(":")
        if not sep:
            password = None

    try:
        parsed = Uri(
            scheme=scheme or "",
            userinfo=_make_userinfo(user, password) if user else "",
            host=host or "",
            port=port,
            path=path or "",
            query=query or "",
            fragment=fragment or "",
        )
    except LocationValueError as e:
        raise LocationParseError(to_str(source_uri)) from e

    return parsed
