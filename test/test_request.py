from __future__ import annotations

import dataclasses
import types
import typing

import pytest

from httpmessage import ByteStream, Request, ServerRequest, UploadedFile, Uri
from httpmessage.exceptions import InvalidArgumentError, InvalidMethod


@dataclasses.dataclass
class LoginForm:
    user: str
    remember: bool = False


class Slotted:
    __slots__ = ("value",)

    def __init__(self, value: int) -> None:
        self.value = value


class TestRequest:
    @pytest.mark.parametrize(
        ["uri", "expected_host"],
        [
            ("http://example.com", "example.com"),
            ("http://Example.COM:8080/path", "example.com:8080"),
            ("http://example.com:80/", "example.com"),
            ("https://example.com:443/", "example.com"),
            ("https://example.com:80/", "example.com:80"),
        ],
    )
    def test_host_header_from_uri(self, uri: str, expected_host: str) -> None:
        assert Request("GET", uri).get_header_line("Host") == expected_host

    def test_host_header_from_uri_object(self) -> None:
        uri = Uri(scheme="https", host="example.com", port=8443)
        request = Request("GET", uri)
        assert request.uri is uri
        assert request.get_header_line("Host") == "example.com:8443"

    def test_default_host_header(self) -> None:
        request = Request("GET", Uri(scheme="http", path="/a"))
        assert request.get_header_line("Host") == "localhost"

    def test_no_host_header_without_host(self) -> None:
        request = Request("GET", "/search?q=1")
        assert not request.has_header("Host")

    def test_explicit_host_header_wins(self) -> None:
        request = Request("GET", "http://example.com", headers={"host": "proxy"})
        assert request.get_header_line("Host") == "proxy"
        assert list(request.headers) == ["host"]

    @pytest.mark.parametrize("method", sorted(Request.ALLOWED_METHODS))
    def test_allowed_methods(self, method: str) -> None:
        assert Request(method, "/").method == method

    @pytest.mark.parametrize("method", ["get", "TRACE", "CONNECT", "", None, 1])
    def test_invalid_method(self, method: typing.Any) -> None:
        with pytest.raises(InvalidMethod) as e:
            Request(method, "/")
        assert e.value.method == method
        assert isinstance(e.value, InvalidArgumentError)

    def test_with_method(self) -> None:
        request = Request("GET", "/")
        post = request.with_method("POST")
        assert post.method == "POST"
        assert request.method == "GET"
        assert request.with_method("GET") is request
        with pytest.raises(InvalidMethod):
            request.with_method("post")

    @pytest.mark.parametrize("uri", [None, 42, b"http://example.com"])
    def test_invalid_uri(self, uri: typing.Any) -> None:
        with pytest.raises(InvalidArgumentError, match="URI must be"):
            Request("GET", uri)

    @pytest.mark.parametrize(
        ["uri", "expected_target"],
        [
            ("http://example.com", "/"),
            ("http://example.com/", "/"),
            ("http://example.com/a/b", "/a/b"),
            ("http://example.com/a?b=1", "/a?b=1"),
            ("http://example.com/a?b=1#frag", "/a?b=1#frag"),
            ("http://example.com/a#frag", "/a"),
            ("http://example.com?q", "/?q"),
            ("/a b", "/a%20b"),
        ],
    )
    def test_request_target(self, uri: str, expected_target: str) -> None:
        assert Request("GET", uri).request_target == expected_target

    def test_with_request_target(self) -> None:
        request = Request("OPTIONS", "http://example.com/a")
        star = request.with_request_target("*")
        assert star.request_target == "*"
        assert request.request_target == "/a"
        assert star.with_request_target("*") is star
        assert star.with_request_target(None).request_target == "/a"
        assert request.with_request_target(None) is request

    @pytest.mark.parametrize(
        "target", ["", "/a b", "/a\tb", "/a\r\n", 42, "/caf\xe9", "/\u20ac"]
    )
    def test_invalid_request_target(self, target: typing.Any) -> None:
        with pytest.raises(InvalidArgumentError, match="Invalid request target"):
            Request("GET", "/").with_request_target(target)

    def test_header_name_must_be_str(self) -> None:
        request = Request("GET", "http://example.com/")
        with pytest.raises(InvalidArgumentError, match="must be a string"):
            request.without_header(42)  # type: ignore[arg-type]
        with pytest.raises(InvalidArgumentError, match="must be a string"):
            request.get_header_line(42)  # type: ignore[arg-type]

    def test_non_latin1_host_is_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError, match="latin-1"):
            Request("GET", Uri("http", host="例.example"))

    def test_request_target_follows_uri(self) -> None:
        request = Request("GET", "http://example.com/old")
        assert request.request_target == "/old"
        assert request.with_uri("http://example.com/new").request_target == "/new"

    def test_with_uri(self) -> None:
        request = Request("GET", "http://example.com/a")
        moved = request.with_uri("http://other.org:8080/b")
        assert moved.uri.url == "http://other.org:8080/b"
        assert moved.get_header_line("Host") == "other.org:8080"
        assert request.uri.url == "http://example.com/a"
        assert request.get_header_line("Host") == "example.com"

    def test_with_uri_preserve_host(self) -> None:
        request = Request("GET", "http://example.com/a")
        moved = request.with_uri("http://other.org/b", preserve_host=True)
        assert moved.uri.host == "other.org"
        assert moved.get_header_line("Host") == "example.com"

    def test_with_uri_replaces_explicit_host(self) -> None:
        request = Request("GET", "http://example.com", headers={"host": "proxy"})
        moved = request.with_uri("http://other.org")
        assert moved.get_header("Host") == ["other.org"]
        assert list(moved.headers) == ["Host"]

    def test_with_uri_without_host_keeps_header(self) -> None:
        request = Request("GET", "http://example.com/a")
        moved = request.with_uri("/b")
        assert moved.uri.path == "/b"
        assert moved.get_header_line("Host") == "example.com"

    def test_with_same_uri(self) -> None:
        request = Request("GET", "http://example.com/a")
        assert request.with_uri(request.uri) is request

    def test_bytes(self) -> None:
        request = Request(
            "POST",
            "http://example.com/submit?x=1",
            headers={"Content-Type": "text/plain", "Accept": ["a", "b"]},
            body=ByteStream.create(b"hello"),
        )
        assert bytes(request) == (
            b"POST /submit?x=1 HTTP/1.1\r\n"
            b"Content-Type: text/plain\r\n"
            b"Accept: a, b\r\n"
            b"Host: example.com\r\n"
            b"\r\n"
            b"hello"
        )

    def test_bytes_without_headers(self) -> None:
        request = Request("GET", "/", protocol_version="1.0")
        assert bytes(request) == b"GET / HTTP/1.0\r\n\r\n"

    def test_bytes_custom_target(self) -> None:
        request = Request("OPTIONS", "http://example.com").with_request_target("*")
        assert bytes(request).startswith(b"OPTIONS * HTTP/1.1\r\n")

    def test_repr(self) -> None:
        request = Request("GET", "http://example.com/a")
        assert repr(request) == "<Request GET 'http://example.com/a'>"


@pytest.fixture()
def server_request() -> ServerRequest:
    return ServerRequest(
        "POST", "http://example.com/login", server_params={"REMOTE_ADDR": "::1"}
    )


class TestServerRequest:
    def test_is_request(self, server_request: ServerRequest) -> None:
        assert isinstance(server_request, Request)
        assert server_request.get_header_line("Host") == "example.com"
        assert server_request.request_target == "/login"

    def test_defaults(self) -> None:
        request = ServerRequest("GET", "/")
        assert dict(request.server_params) == {}
        assert dict(request.cookie_params) == {}
        assert dict(request.query_params) == {}
        assert request.uploaded_files == {}
        assert request.parsed_body is None
        assert dict(request.attributes) == {}

    def test_server_params_are_read_only(self) -> None:
        params = {"REMOTE_ADDR": "127.0.0.1"}
        request = ServerRequest("GET", "/", server_params=params)
        params["REMOTE_ADDR"] = "10.0.0.1"
        assert request.server_params["REMOTE_ADDR"] == "127.0.0.1"
        with pytest.raises(TypeError):
            request.server_params["REMOTE_ADDR"] = "10.0.0.1"  # type: ignore[index]

    def test_clones_keep_type_and_state(self, server_request: ServerRequest) -> None:
        request = server_request.with_query_params({"page": "2"})
        new = request.with_method("PUT")
        assert isinstance(new, ServerRequest)
        assert new.method == "PUT"
        assert new.server_params["REMOTE_ADDR"] == "::1"
        assert dict(new.query_params) == {"page": "2"}

    def test_with_cookie_params(self, server_request: ServerRequest) -> None:
        new = server_request.with_cookie_params({"session": "abc"})
        assert dict(new.cookie_params) == {"session": "abc"}
        assert dict(server_request.cookie_params) == {}
        assert new.with_cookie_params({"session": "abc"}) is new
        with pytest.raises(TypeError):
            new.cookie_params["session"] = "x"  # type: ignore[index]

    def test_cookie_params_are_copied(self, server_request: ServerRequest) -> None:
        cookies = {"session": "abc"}
        new = server_request.with_cookie_params(cookies)
        cookies["session"] = "changed"
        assert new.cookie_params["session"] == "abc"

    def test_with_query_params(self, server_request: ServerRequest) -> None:
        new = server_request.with_query_params({"q": ["a", "b"]})
        assert dict(new.query_params) == {"q": ["a", "b"]}
        assert dict(server_request.query_params) == {}
        assert new.with_query_params({"q": ["a", "b"]}) is new
        assert server_request.with_query_params({}) is server_request

    def test_with_uploaded_files(self, server_request: ServerRequest) -> None:
        avatar = UploadedFile(ByteStream.create(b"png"))
        doc1 = UploadedFile(ByteStream.create(b"a"))
        doc2 = UploadedFile(ByteStream.create(b"b"))
        files = {"avatar": avatar, "docs": [doc1, doc2], "nested": {"x": (doc1,)}}
        new = server_request.with_uploaded_files(files)
        assert new.uploaded_files["avatar"] is avatar
        assert new.uploaded_files["docs"] == (doc1, doc2)
        assert dict(new.uploaded_files["nested"]) == {"x": (doc1,)}
        assert server_request.uploaded_files == {}
        assert new.with_uploaded_files(files) is new
        assert new.with_uploaded_files(new.uploaded_files) is new

    def test_uploaded_files_are_copied(self, server_request: ServerRequest) -> None:
        doc = UploadedFile(ByteStream.create(b"a"))
        docs = [doc]
        files: dict[str, typing.Any] = {"docs": docs, "nested": {"x": doc}}
        new = server_request.with_uploaded_files(files)
        docs.append("not a file")
        files["nested"]["x"] = None
        files["extra"] = doc
        assert new.uploaded_files["docs"] == (doc,)
        assert new.uploaded_files["nested"]["x"] is doc
        assert "extra" not in new.uploaded_files
        with pytest.raises(TypeError):
            new.uploaded_files["extra"] = doc  # type: ignore[index]
        with pytest.raises(TypeError):
            new.uploaded_files["nested"]["x"] = None

    def test_with_uploaded_files_list(self, server_request: ServerRequest) -> None:
        files = [UploadedFile(ByteStream.create(b"a"))]
        new = server_request.with_uploaded_files(files)
        assert new.uploaded_files == tuple(files)

    @pytest.mark.parametrize(
        "files",
        [
            {"avatar": "not a file"},
            {"docs": [None]},
            {"nested": {"deeper": [b"bytes"]}},
        ],
    )
    def test_invalid_uploaded_file_leaf(
        self, server_request: ServerRequest, files: typing.Any
    ) -> None:
        with pytest.raises(InvalidArgumentError, match="tree of UploadedFile"):
            server_request.with_uploaded_files(files)

    @pytest.mark.parametrize("files", ["avatar", None, 42])
    def test_invalid_uploaded_files(
        self, server_request: ServerRequest, files: typing.Any
    ) -> None:
        with pytest.raises(InvalidArgumentError, match="mapping or a list"):
            server_request.with_uploaded_files(files)

    @pytest.mark.parametrize(
        "body",
        [
            {"user": "alice"},
            [1, 2, 3],
            ("a",),
            LoginForm("alice"),
            types.SimpleNamespace(user="alice"),
            Slotted(1),
        ],
    )
    def test_with_parsed_body(
        self, server_request: ServerRequest, body: typing.Any
    ) -> None:
        new = server_request.with_parsed_body(body)
        assert new.parsed_body is body
        assert server_request.parsed_body is None
        assert new.with_parsed_body(body) is new

    def test_with_parsed_body_none(self, server_request: ServerRequest) -> None:
        assert server_request.with_parsed_body(None) is server_request
        new = server_request.with_parsed_body({"a": 1})
        assert new.with_parsed_body(None).parsed_body is None

    @pytest.mark.parametrize(
        "body",
        [42, 1.5, True, "user=alice", b"user=alice", int, len, lambda: None, types],
    )
    def test_invalid_parsed_body(
        self, server_request: ServerRequest, body: typing.Any
    ) -> None:
        with pytest.raises(InvalidArgumentError, match="Parsed body must be"):
            server_request.with_parsed_body(body)

    def test_attributes(self, server_request: ServerRequest) -> None:
        route = object()
        new = server_request.with_attribute("route", route)
        assert new.get_attribute("route") is route
        assert server_request.get_attribute("route") is None
        assert server_request.get_attribute("route", "default") == "default"
        assert dict(new.attributes) == {"route": route}
        assert new.with_attribute("route", route) is new

    def test_attributes_are_read_only(self, server_request: ServerRequest) -> None:
        new = server_request.with_attribute("user", "alice")
        with pytest.raises(TypeError):
            new.attributes["user"] = "bob"  # type: ignore[index]

    def test_without_attribute(self, server_request: ServerRequest) -> None:
        new = server_request.with_attribute("a", 1).with_attribute("b", 2)
        removed = new.without_attribute("a")
        assert dict(removed.attributes) == {"b": 2}
        assert dict(new.attributes) == {"a": 1, "b": 2}
        assert removed.without_attribute("a") is removed

    def test_attribute_set_to_none(self, server_request: ServerRequest) -> None:
        new = server_request.with_attribute("a", None)
        assert "a" in new.attributes
        assert new.get_attribute("a", "default") is None
