# For convenience, allow you to access the helpers used by the message classes
# from here.
from .cookie import format_cookie_date, format_http_date, format_set_cookie
from .url import Uri, compose_components, parse_uri
from .util import to_bytes, to_str

__all__ = (
    "Uri",
    "compose_components",
    "format_cookie_date",
    "format_http_date",
    "format_set_cookie",
    "parse_uri",
    "to_bytes",
    "to_str",
)
