import re
import typing
from typing import Dict, Mapping, Optional

from ._collections import _TYPE_HEADERS
from .exceptions import InvalidArgumentError, InvalidStatus
from .message import BaseHTTPMessage
from .stream import ByteStream
from .util.cookie import format_http_date, format_set_cookie
from .util.util import to_bytes

if typing.TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["REASON_PHRASES", "Response"]

_CONTAINS_CONTROL_CHAR_RE = re.compile(r"[\r\n\x00]")

# Standard reason phrases, used when a response doesn't carry its own.
REASON_PHRASES: Mapping[int, str] = {
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-status",
    208: "Already Reported",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    306: "Switch Proxy",
    307: "Temporary Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Time-out",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Request Entity Too Large",
    414: "Request-URI Too Large",
    415: "Unsupported Media Type",
    416: "Requested range not satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    425: "Unordered Collection",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    451: "Unavailable For Legal Reasons",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Time-out",
    505: "HTTP Version not supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    511: "Network Authentication Required",
}


def _validate_status(status: object) -> int:
    if isinstance(status, bool) or not isinstance(status, int):
        raise InvalidStatus(status)
    if status < 100 or status >= 600:
        raise InvalidStatus(status)
    return status


def _validate_reason(reason: object) -> str:
    if not isinstance(reason, str):
        raise InvalidArgumentError(
            f"Reason phrase must be a string, not {type(reason).__name__}"
        )
    if _CONTAINS_CONTROL_CHAR_RE.search(reason):
        raise InvalidArgumentError(f"Invalid reason phrase {reason!r}")
    try:
        reason.encode("latin-1")
    except UnicodeEncodeError:
        raise InvalidArgumentError(
            f"Reason phrase must be encodable as latin-1: {reason!r}"
        ) from None
    return reason


class Response(BaseHTTPMessage):
    """
    An HTTP response.

    :param status:
        Status code between 100 and 599.

    :param reason:
        Reason phrase. When empty, the phrase is looked up in
        :attr:`REASON_PHRASES`.

    The remaining parameters are those of
    :class:`~httpmessage.message.BaseHTTPMessage`.

    ``bytes(response)`` gives the response as it goes on the wire, with
    ``Date`` and ``Content-Length`` headers filled in::

        >>> response = Response(404, body=ByteStream.create(b"gone"))
        >>> bytes(response).splitlines()[0]
        b'HTTP/1.1 404 Not Found'
    """

    REASON_PHRASES: Mapping[int, str] = REASON_PHRASES

    def __init__(
        self,
        status: int = 200,
        reason: str = "",
        headers: Optional[_TYPE_HEADERS] = None,
        body: Optional[ByteStream] = None,
        protocol_version: Optional[str] = None,
    ) -> None:
        super().__init__(
            headers=headers, body=body, protocol_version=protocol_version
        )
        self._status = _validate_status(status)
        self._reason = _validate_reason(reason)
        # Encoded cookie name -> Set-Cookie header value, in insertion order.
        self._cookies: Dict[str, str] = {}

    @property
    def status(self) -> int:
        return self._status

    @property
    def reason(self) -> str:
        return self._reason or self.REASON_PHRASES.get(self._status, "")

    def with_status(self, status: int, reason: str = "") -> "Self":
        """
        Returns a response with the given status. Passing the phrase the
        status would get by default is the same as passing no phrase.
        """
        status = _validate_status(status)
        reason = _validate_reason(reason)
        if status == self._status:
            if reason == self._reason:
                return self
            if reason == "" and self.REASON_PHRASES.get(status) == self._reason:
                return self
        new = self._clone()
        new._status = status
        new._reason = reason
        return new

    @property
    def cookies(self) -> Dict[str, str]:
        """Copy of the cookies to set, keyed by encoded name."""
        return dict(self._cookies)

    def with_cookie(
        self,
        name: str,
        value: str = "",
        max_age: int = 0,
        path: str = "",
        domain: str = "",
        secure: bool = False,
        http_only: bool = True,
        raw: bool = False,
        same_site: Optional[str] = None,
    ) -> "Self":
        """
        Returns a response that sets a cookie. See
        :func:`~httpmessage.util.cookie.format_set_cookie` for the parameters.
        Setting a cookie with the same name again replaces it.

        >>> Response().with_cookie("theme", "dark").cookies
        {'theme': 'theme=dark; Path=/; Httponly'}
        """
        name, cookie = format_set_cookie(
            name,
            value,
            max_age=max_age,
            path=path,
            domain=domain,
            secure=secure,
            http_only=http_only,
            raw=raw,
            same_site=same_site,
        )
        if self._cookies.get(name) == cookie:
            return self
        new = self._clone()
        new._cookies = {**self._cookies, name: cookie}
        return new

    def _status_line(self) -> str:
        return f"HTTP/{self.protocol_version} {self._status} {self.reason}"

    def __bytes__(self) -> bytes:
        body = self.body
        size = body.get_size()
        new = self.with_header("Date", format_http_date()).with_header(
            "Content-Length", str(size) if size else "0"
        )

        lines = [new._status_line()]
        lines.extend(f"Set-Cookie: {cookie}" for cookie in new._cookies.values())
        lines.extend(new._header_lines())
        head = "\r\n".join(lines) + "\r\n\r\n"
        return to_bytes(head, "latin-1") + bytes(body)

    def __str__(self) -> str:
        return bytes(self).decode("latin-1")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} [{self._status}]>"
