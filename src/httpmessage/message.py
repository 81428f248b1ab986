import copy
import typing
from typing import Iterator, List, Optional

from ._collections import _TYPE_HEADER_VALUE, _TYPE_HEADERS, HeaderBag
from .exceptions import InvalidArgumentError
from .stream import ByteStream

if typing.TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["BaseHTTPMessage"]


def _validate_protocol_version(version: object) -> str:
    if not isinstance(version, str) or not version:
        raise InvalidArgumentError(
            f"Protocol version must be a non-empty string, not {version!r}"
        )
    return version


def _validate_body(body: object) -> ByteStream:
    if not isinstance(body, ByteStream):
        raise InvalidArgumentError(
            f"Message body must be a ByteStream, not {type(body).__name__}"
        )
    return body


class BaseHTTPMessage:
    """
    Protocol version, headers and body shared by requests and responses.

    Messages are immutable. Every ``with_*`` method returns a modified
    copy and leaves the message it was called on alone, or returns the
    same message when nothing would change. Copies share the body stream
    until one of them is given a new one with :meth:`with_body`.

    :param headers:
        Initial headers, as accepted by :class:`~httpmessage.HeaderBag`.

    :param body:
        A :class:`~httpmessage.stream.ByteStream`. An empty in-memory stream
        is created on first access when not given.

    :param protocol_version:
        HTTP version without the ``HTTP/`` prefix. Defaults to ``"1.1"``.
    """

    DEFAULT_PROTOCOL_VERSION = "1.1"

    def __init__(
        self,
        headers: Optional[_TYPE_HEADERS] = None,
        body: Optional[ByteStream] = None,
        protocol_version: Optional[str] = None,
    ) -> None:
        self._protocol_version = self.DEFAULT_PROTOCOL_VERSION
        self._headers = HeaderBag()
        self._body: Optional[ByteStream] = None

        if headers is not None:
            self._headers = HeaderBag(headers)
        if body is not None:
            self._body = _validate_body(body)
        if protocol_version is not None:
            self._protocol_version = _validate_protocol_version(protocol_version)

    def _clone(self) -> "Self":
        return copy.copy(self)

    def _with_headers(self, headers: HeaderBag) -> "Self":
        if headers is self._headers:
            return self
        new = self._clone()
        new._headers = headers
        return new

    @property
    def protocol_version(self) -> str:
        return self._protocol_version

    def with_protocol_version(self, version: str) -> "Self":
        if version == self._protocol_version:
            return self
        new = self._clone()
        new._protocol_version = _validate_protocol_version(version)
        return new

    @property
    def headers(self) -> HeaderBag:
        """Read-only view of all headers."""
        return self._headers

    def has_header(self, name: str) -> bool:
        return name in self._headers

    def get_header(self, name: str) -> List[str]:
        """All values of the header, ``[]`` if it isn't set."""
        return self._headers.getlist(name)

    def get_header_line(self, name: str) -> str:
        """All values of the header joined by ``", "``, ``""`` if it isn't
        set."""
        return self._headers.get_line(name)

    def with_header(self, name: str, value: _TYPE_HEADER_VALUE) -> "Self":
        """Returns a message where ``name`` holds ``value`` and nothing else."""
        return self._with_headers(self._headers.set(name, value))

    def with_added_header(self, name: str, value: _TYPE_HEADER_VALUE) -> "Self":
        """Returns a message with ``value`` appended to the existing values of
        ``name``."""
        return self._with_headers(self._headers.add(name, value))

    def without_header(self, name: str) -> "Self":
        return self._with_headers(self._headers.remove(name))

    @property
    def body(self) -> ByteStream:
        if self._body is None:
            self._body = ByteStream.create()
        return self._body

    def with_body(self, body: ByteStream) -> "Self":
        if body is self.body:
            return self
        new = self._clone()
        new._body = _validate_body(body)
        return new

    def _header_lines(self) -> Iterator[str]:
        for name, value in self._headers.itermerged():
            yield f"{name}: {value}"
