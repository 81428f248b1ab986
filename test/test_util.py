from __future__ import annotations

import logging
import typing

import pytest

import httpmessage
from httpmessage import add_stderr_logger
from httpmessage.exceptions import InvalidArgumentError
from httpmessage.util import (
    format_cookie_date,
    format_http_date,
    format_set_cookie,
    to_bytes,
    to_str,
)

# 2001-09-09 01:46:40 UTC, a Sunday.
BILLENNIUM = 1_000_000_000


class TestUtil:
    def test_add_stderr_logger(self) -> None:
        handler = add_stderr_logger(level=logging.INFO)  # Don't actually print debug
        logger = logging.getLogger("httpmessage")
        try:
            assert handler in logger.handlers
            assert logger.level == logging.INFO
            logger.debug("Testing add_stderr_logger")
        finally:
            logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)

    def test_null_handler(self) -> None:
        logger = logging.getLogger("httpmessage")
        assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)

    def test_public_names(self) -> None:
        for name in httpmessage.__all__:
            assert hasattr(httpmessage, name)
        assert isinstance(httpmessage.__version__, str)

    @pytest.mark.parametrize(
        ["value", "args", "expected"],
        [
            ("abc", (), b"abc"),
            (b"abc", (), b"abc"),
            (bytearray(b"abc"), (), b"abc"),
            (memoryview(b"abc"), (), b"abc"),
            ("caf\xe9", (), b"caf\xc3\xa9"),
            ("caf\xe9", ("latin-1",), b"caf\xe9"),
            ("caf€", ("ascii", "replace"), b"caf?"),
        ],
    )
    def test_to_bytes(
        self, value: typing.Any, args: typing.Any, expected: bytes
    ) -> None:
        assert to_bytes(value, *args) == expected

    def test_to_bytes_error(self) -> None:
        with pytest.raises(TypeError, match="not expecting type int"):
            to_bytes(1)  # type: ignore[arg-type]
        with pytest.raises(UnicodeEncodeError):
            to_bytes("caf€", "latin-1")

    @pytest.mark.parametrize(
        ["value", "args", "expected"],
        [
            ("abc", (), "abc"),
            (b"abc", (), "abc"),
            (b"caf\xc3\xa9", (), "caf\xe9"),
            (b"caf\xe9", ("latin-1",), "caf\xe9"),
            (b"caf\xff", ("ascii", "replace"), "caf\ufffd"),
        ],
    )
    def test_to_str(self, value: typing.Any, args: typing.Any, expected: str) -> None:
        assert to_str(value, *args) == expected

    def test_to_str_error(self) -> None:
        with pytest.raises(TypeError, match="not expecting type bytearray"):
            to_str(bytearray(b"abc"))  # type: ignore[arg-type]


class TestDates:
    @pytest.mark.parametrize(
        ["timestamp", "expected"],
        [
            (0, "Thu, 01 Jan 1970 00:00:00 GMT"),
            (BILLENNIUM, "Sun, 09 Sep 2001 01:46:40 GMT"),
            (BILLENNIUM + 0.9, "Sun, 09 Sep 2001 01:46:40 GMT"),
        ],
    )
    def test_format_http_date(self, timestamp: float, expected: str) -> None:
        assert format_http_date(timestamp) == expected

    def test_format_http_date_now(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("time.time", lambda: BILLENNIUM)
        assert format_http_date() == "Sun, 09 Sep 2001 01:46:40 GMT"

    @pytest.mark.parametrize(
        ["timestamp", "expected"],
        [
            (0, "Thu, 01-Jan-1970 00:00:00 GMT"),
            (BILLENNIUM, "Sun, 09-Sep-2001 01:46:40 GMT"),
            (BILLENNIUM + 3600, "Sun, 09-Sep-2001 02:46:40 GMT"),
        ],
    )
    def test_format_cookie_date(self, timestamp: float, expected: str) -> None:
        assert format_cookie_date(timestamp) == expected


class TestFormatSetCookie:
    def test_session_cookie(self) -> None:
        assert format_set_cookie("id", "42") == ("id", "id=42; Path=/; Httponly")

    def test_max_age(self) -> None:
        _, cookie = format_set_cookie("id", "42", max_age=3600, now=BILLENNIUM)
        assert cookie == (
            "id=42; Expires=Sun, 09-Sep-2001 02:46:40 GMT; Max-Age=3600; "
            "Path=/; Httponly"
        )

    @pytest.mark.parametrize("max_age", [0, -1, -3600])
    def test_non_positive_max_age(self, max_age: int) -> None:
        _, cookie = format_set_cookie("id", "42", max_age=max_age, now=BILLENNIUM)
        assert cookie == "id=42; Path=/; Httponly"

    def test_deleted_cookie(self) -> None:
        _, cookie = format_set_cookie("id", max_age=3600, now=BILLENNIUM)
        assert cookie == (
            "id=deleted; Expires=Sat, 09-Sep-2000 01:46:39 GMT; "
            "Max-Age=-31536001; Path=/; Httponly"
        )

    def test_all_attributes(self) -> None:
        name, cookie = format_set_cookie(
            "id",
            "42",
            path="/app",
            domain=".example.com",
            secure=True,
            http_only=True,
            same_site="lax",
        )
        assert name == "id"
        assert cookie == (
            "id=42; Path=/app; Domain=.example.com; Secure; Httponly; SameSite=Lax"
        )

    def test_no_http_only(self) -> None:
        _, cookie = format_set_cookie("id", "42", http_only=False)
        assert cookie == "id=42; Path=/"

    @pytest.mark.parametrize(
        ["name", "value", "expected_name", "expected_value"],
        [
            ("a+b", "c d", "a%2Bb", "c%20d"),
            ("caf\xe9", "€", "caf%C3%A9", "%E2%82%AC"),
            ("x", "a/b=c", "x", "a%2Fb%3Dc"),
        ],
    )
    def test_encoding(
        self, name: str, value: str, expected_name: str, expected_value: str
    ) -> None:
        encoded_name, cookie = format_set_cookie(name, value)
        assert encoded_name == expected_name
        assert cookie.startswith(f"{expected_name}={expected_value}; ")

    def test_raw(self) -> None:
        name, cookie = format_set_cookie("a+b", "c%20d", raw=True)
        assert name == "a+b"
        assert cookie.startswith("a+b=c%20d; ")

    @pytest.mark.parametrize(
        "name", ["a=b", "a,b", "a;b", "a b", "a\tb", "a\rb", "a\nb", "a\x0bb", "a\x0cb"]
    )
    def test_invalid_name(self, name: str) -> None:
        with pytest.raises(InvalidArgumentError, match="contains invalid characters"):
            format_set_cookie(name, "1")

    def test_empty_name(self) -> None:
        with pytest.raises(InvalidArgumentError, match="cannot be empty"):
            format_set_cookie("", "1")

    @pytest.mark.parametrize("same_site", ["none", "Lax", ""])
    def test_invalid_same_site(self, same_site: str) -> None:
        with pytest.raises(InvalidArgumentError, match="is not valid"):
            format_set_cookie("id", "1", same_site=same_site)

    @pytest.mark.parametrize("domain", ["a\r\nb", "a\x00b"])
    def test_control_characters(self, domain: str) -> None:
        with pytest.raises(InvalidArgumentError, match="Invalid cookie"):
            format_set_cookie("id", "1", domain=domain)
