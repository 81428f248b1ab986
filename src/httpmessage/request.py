import re
import typing
from types import (
    BuiltinFunctionType,
    FunctionType,
    MappingProxyType,
    MethodType,
    ModuleType,
)
from typing import (
    Any,
    Dict,
    FrozenSet,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from ._collections import _TYPE_HEADERS, HeaderBag
from .exceptions import InvalidArgumentError, InvalidMethod
from .message import BaseHTTPMessage
from .stream import ByteStream
from .upload import UploadedFile
from .util.url import Uri, parse_uri
from .util.util import to_bytes

if typing.TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["Request", "ServerRequest"]

_TYPE_URI = Union[Uri, str]
# Nested mappings and lists with UploadedFile leaves.
_TYPE_UPLOADED_FILES = Union[Mapping[str, Any], Sequence[Any]]

_CONTAINS_WHITESPACE_RE = re.compile(r"\s")
_NOT_A_PARSED_BODY = (
    str,
    bytes,
    bytearray,
    int,
    float,
    complex,
    type,
    FunctionType,
    BuiltinFunctionType,
    MethodType,
    ModuleType,
)


def _to_uri(uri: object) -> Uri:
    if isinstance(uri, Uri):
        return uri
    elif isinstance(uri, str):
        return parse_uri(uri)
    raise InvalidArgumentError(
        f"URI must be a Uri or a string, not {type(uri).__name__}"
    )


class Request(BaseHTTPMessage):
    """
    An outgoing HTTP request.

    :param method:
        One of :attr:`ALLOWED_METHODS`. Methods are case-sensitive.

    :param uri:
        A :class:`~httpmessage.util.url.Uri` or a string to parse into one.
        Unless ``headers`` already has a ``Host`` field, the ``Host`` header
        is taken from the host and port of the URI.

    The remaining parameters are those of
    :class:`~httpmessage.message.BaseHTTPMessage`.

    >>> req = Request("GET", "http://example.com:8080/search?q=x")
    >>> req.get_header_line("Host")
    'example.com:8080'
    >>> req.request_target
    '/search?q=x'
    """

    ALLOWED_METHODS: FrozenSet[str] = frozenset(
        {"OPTIONS", "HEAD", "GET", "POST", "PUT", "PATCH", "DELETE"}
    )

    def __init__(
        self,
        method: str,
        uri: _TYPE_URI,
        headers: Optional[_TYPE_HEADERS] = None,
        body: Optional[ByteStream] = None,
        protocol_version: Optional[str] = None,
    ) -> None:
        super().__init__(
            headers=headers, body=body, protocol_version=protocol_version
        )
        self._method = self._validate_method(method)
        self._request_target: Optional[str] = None
        self._uri = _to_uri(uri)
        if not self.has_header("Host"):
            self._headers = self._host_headers()

    def _validate_method(self, method: object) -> str:
        if not isinstance(method, str) or method not in self.ALLOWED_METHODS:
            raise InvalidMethod(method)
        return method

    def _host_headers(self) -> HeaderBag:
        host = self._uri.host
        if not host:
            return self._headers
        if self._uri.port is not None:
            host = f"{host}:{self._uri.port}"
        return self._headers.set("Host", host)

    @property
    def method(self) -> str:
        return self._method

    def with_method(self, method: str) -> "Self":
        if method == self._method:
            return self
        new = self._clone()
        new._method = self._validate_method(method)
        return new

    @property
    def request_target(self) -> str:
        """
        The target sent on the request line. Unless it was replaced with
        :meth:`with_request_target`, this is the path of the URI (``/`` if
        empty) followed by the query and, when there is a query, the
        fragment.
        """
        if self._request_target is not None:
            return self._request_target
        target = self._uri.path or "/"
        if self._uri.query:
            target += f"?{self._uri.query}"
            if self._uri.fragment:
                target += f"#{self._uri.fragment}"
        return target

    def with_request_target(self, request_target: Optional[str]) -> "Self":
        """
        Returns a request sent to ``request_target``, such as ``*`` or an
        absolute URI, instead of the one derived from the URI. ``None``
        goes back to the derived target.
        """
        if request_target == self._request_target:
            return self
        if request_target is not None:
            if not isinstance(request_target, str) or not request_target:
                raise InvalidArgumentError(
                    f"Invalid request target provided: {request_target!r}"
                )
            if _CONTAINS_WHITESPACE_RE.search(request_target):
                raise InvalidArgumentError(
                    "Invalid request target provided; cannot contain whitespace"
                )
            if not request_target.isascii():
                raise InvalidArgumentError(
                    f"Invalid request target provided; must be ASCII: {request_target!r}"
                )
        new = self._clone()
        new._request_target = request_target
        return new

    @property
    def uri(self) -> Uri:
        return self._uri

    def with_uri(self, uri: _TYPE_URI, preserve_host: bool = False) -> "Self":
        """
        Returns a request for ``uri``. The ``Host`` header follows the new
        URI unless ``preserve_host`` is set, or the URI has no host.
        """
        uri = _to_uri(uri)
        if uri is self._uri:
            return self
        new = self._clone()
        new._uri = uri
        if not preserve_host:
            new._headers = new._host_headers()
        return new

    def __bytes__(self) -> bytes:
        """The request as it would be sent, head and body."""
        request_line = (
            f"{self._method} {self.request_target} HTTP/{self.protocol_version}"
        )
        lines = [request_line]
        lines.extend(self._header_lines())
        head = "\r\n".join(lines) + "\r\n\r\n"
        return to_bytes(head, "latin-1") + bytes(self.body)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._method} {self._uri.url!r}>"


def _freeze_uploaded_files(tree: object) -> Any:
    """Validates the tree and copies it into read-only containers."""
    if isinstance(tree, UploadedFile):
        return tree
    elif isinstance(tree, Mapping):
        return MappingProxyType(
            {key: _freeze_uploaded_files(value) for key, value in tree.items()}
        )
    elif isinstance(tree, (list, tuple)):
        return tuple(_freeze_uploaded_files(value) for value in tree)
    raise InvalidArgumentError(
        "Uploaded files must be a tree of UploadedFile instances, "
        f"found {type(tree).__name__}"
    )


def _validate_parsed_body(data: object) -> Any:
    if data is None or isinstance(data, (Mapping, list, tuple)):
        return data
    # Strings and numbers are objects too, but never a parsed body, and
    # neither are classes, functions or modules.
    if not isinstance(data, _NOT_A_PARSED_BODY) and (
        hasattr(data, "__dict__") or hasattr(type(data), "__slots__")
    ):
        return data
    raise InvalidArgumentError(
        "Parsed body must be a mapping, a sequence, an object, or None, "
        f"not {type(data).__name__}"
    )


class ServerRequest(Request):
    """
    A request as received by a server, carrying what the server learned
    about it besides the message itself.

    :param server_params:
        Environment of the request, such as the ``REMOTE_ADDR`` of the
        client. Read-only, and set once.

    Cookie and query params, uploaded files and the parsed body are not
    derived from the message. Whoever parses the request fills them in
    with the matching ``with_*`` method. Attributes are free for
    application code, e.g. the result of routing.
    """

    def __init__(
        self,
        method: str,
        uri: _TYPE_URI,
        server_params: Optional[Mapping[str, Any]] = None,
        headers: Optional[_TYPE_HEADERS] = None,
        body: Optional[ByteStream] = None,
        protocol_version: Optional[str] = None,
    ) -> None:
        self._server_params: Mapping[str, Any] = MappingProxyType(
            dict(server_params or {})
        )
        self._cookie_params: Dict[str, Any] = {}
        self._query_params: Dict[str, Any] = {}
        self._uploaded_files: _TYPE_UPLOADED_FILES = MappingProxyType({})
        self._parsed_body: Any = None
        self._attributes: Dict[str, Any] = {}
        super().__init__(
            method, uri, headers=headers, body=body, protocol_version=protocol_version
        )

    @property
    def server_params(self) -> Mapping[str, Any]:
        return self._server_params

    @property
    def cookie_params(self) -> Mapping[str, Any]:
        return MappingProxyType(self._cookie_params)

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> "Self":
        if cookies == self._cookie_params:
            return self
        new = self._clone()
        new._cookie_params = dict(cookies)
        return new

    @property
    def query_params(self) -> Mapping[str, Any]:
        return MappingProxyType(self._query_params)

    def with_query_params(self, query: Mapping[str, Any]) -> "Self":
        if query == self._query_params:
            return self
        new = self._clone()
        new._query_params = dict(query)
        return new

    @property
    def uploaded_files(self) -> _TYPE_UPLOADED_FILES:
        return self._uploaded_files

    def with_uploaded_files(self, uploaded_files: _TYPE_UPLOADED_FILES) -> "Self":
        """
        :param uploaded_files:
            Mappings and lists nested in any shape, with
            :class:`~httpmessage.upload.UploadedFile` leaves, e.g.
            ``{"avatar": file, "docs": [file1, file2]}``.
            The tree is copied, mappings become read-only and lists
            become tuples.
        """
        if not isinstance(uploaded_files, (Mapping, list, tuple)):
            raise InvalidArgumentError(
                "Uploaded files must be a mapping or a list, "
                f"not {type(uploaded_files).__name__}"
            )
        frozen = _freeze_uploaded_files(uploaded_files)
        if frozen == self._uploaded_files:
            return self
        new = self._clone()
        new._uploaded_files = frozen
        return new

    @property
    def parsed_body(self) -> Any:
        return self._parsed_body

    def with_parsed_body(self, data: Any) -> "Self":
        """
        :param data:
            ``None``, a mapping, a list, or an object such as a dataclass
            instance. Anything else, including strings and numbers, is
            rejected.
        """
        data = _validate_parsed_body(data)
        if data is self._parsed_body:
            return self
        new = self._clone()
        new._parsed_body = data
        return new

    @property
    def attributes(self) -> Mapping[str, Any]:
        return MappingProxyType(self._attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> "Self":
        if name in self._attributes and self._attributes[name] is value:
            return self
        new = self._clone()
        new._attributes = {**self._attributes, name: value}
        return new

    def without_attribute(self, name: str) -> "Self":
        if name not in self._attributes:
            return self
        new = self._clone()
        attributes = dict(self._attributes)
        del attributes[name]
        new._attributes = attributes
        return new
