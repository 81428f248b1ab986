import re
import time
from typing import Optional, Tuple
from urllib.parse import quote, quote_plus

from ..exceptions import InvalidArgumentError

__all__ = ["format_cookie_date", "format_http_date", "format_set_cookie"]

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

_INVALID_COOKIE_NAME_RE = re.compile(r"[=,; \t\r\n\x0b\x0c]")
_CONTAINS_CONTROL_CHAR_RE = re.compile(r"[\r\n\x00]")

#: ``SameSite`` values a cookie may carry, ``None`` leaves the attribute out.
SAME_SITE_VALUES = (None, "lax", "strict")

# Seconds a deleted cookie is dated into the past.
DELETED_COOKIE_AGE = 31536001


def format_cookie_date(timestamp: float) -> str:
    """
    Formats a POSIX timestamp for the ``Expires`` attribute of a cookie.

    >>> format_cookie_date(0)
    'Thu, 01-Jan-1970 00:00:00 GMT'
    """
    t = time.gmtime(int(timestamp))
    return "%s, %02d-%s-%04d %02d:%02d:%02d GMT" % (
        _WEEKDAYS[t.tm_wday],
        t.tm_mday,
        _MONTHS[t.tm_mon - 1],
        t.tm_year,
        t.tm_hour,
        t.tm_min,
        t.tm_sec,
    )


def format_http_date(timestamp: Optional[float] = None) -> str:
    """
    Formats a POSIX timestamp, or the current time, as an RFC 7231 HTTP-date.

    >>> format_http_date(0)
    'Thu, 01 Jan 1970 00:00:00 GMT'
    """
    if timestamp is None:
        timestamp = time.time()
    t = time.gmtime(int(timestamp))
    return "%s, %02d %s %04d %02d:%02d:%02d GMT" % (
        _WEEKDAYS[t.tm_wday],
        t.tm_mday,
        _MONTHS[t.tm_mon - 1],
        t.tm_year,
        t.tm_hour,
        t.tm_min,
        t.tm_sec,
    )


def format_set_cookie(
    name: str,
    value: str = "",
    max_age: int = 0,
    path: str = "",
    domain: str = "",
    secure: bool = False,
    http_only: bool = True,
    raw: bool = False,
    same_site: Optional[str] = None,
    now: Optional[float] = None,
) -> Tuple[str, str]:
    """
    Builds the value of a ``Set-Cookie`` header.

    :param name:
        Cookie name. It can't be empty or contain ``=,;``, whitespace or
        line breaks.

    :param value:
        Cookie value. An empty value produces a cookie that tells the client
        to delete it, and ``max_age`` is ignored.

    :param max_age:
        Lifetime in seconds. Anything below 1 makes a session cookie.

    :param path:
        Defaults to ``/``.

    :param raw:
        If set, name and value are used as given. Otherwise the name is
        form-encoded and the value is percent-encoded.

    :param same_site:
        ``"lax"``, ``"strict"`` or ``None``.

    :param now:
        POSIX timestamp the ``Expires`` attribute is relative to. Defaults
        to the current time.

    :returns: A tuple of the (possibly encoded) name and the header value.

    >>> format_set_cookie("id", "a b", path="/app")
    ('id', 'id=a%20b; Path=/app; Httponly')
    """
    if _INVALID_COOKIE_NAME_RE.search(name):
        raise InvalidArgumentError(
            f"The cookie name {name!r} contains invalid characters."
        )
    if not name:
        raise InvalidArgumentError("The cookie name cannot be empty.")
    if same_site not in SAME_SITE_VALUES:
        raise InvalidArgumentError(
            f"The same_site value {same_site!r} is not valid, "
            f"expected one of {SAME_SITE_VALUES}."
        )

    if not raw:
        name = quote_plus(name)
        value = quote(value, safe="")

    if now is None:
        now = time.time()
    max_age = max(0, max_age)

    if value == "":
        parts = [
            f"{name}=deleted",
            f"Expires={format_cookie_date(now - DELETED_COOKIE_AGE)}",
            f"Max-Age=-{DELETED_COOKIE_AGE}",
        ]
    else:
        parts = [f"{name}={value}"]
        if max_age > 0:
            parts.append(f"Expires={format_cookie_date(now + max_age)}")
            parts.append(f"Max-Age={max_age}")

    parts.append(f"Path={path or '/'}")
    if domain:
        parts.append(f"Domain={domain}")
    if secure:
        parts.append("Secure")
    if http_only:
        parts.append("Httponly")
    if same_site is not None:
        parts.append(f"SameSite={same_site.capitalize()}")

    cookie = "; ".join(parts)
    if _CONTAINS_CONTROL_CHAR_RE.search(cookie):
        raise InvalidArgumentError(f"Invalid cookie {cookie!r}")
    try:
        cookie.encode("latin-1")
    except UnicodeEncodeError:
        raise InvalidArgumentError(
            f"Invalid cookie {cookie!r}; must be encodable as latin-1"
        ) from None
    return name, cookie
