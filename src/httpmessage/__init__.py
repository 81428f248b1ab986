"""
Immutable HTTP messages, URIs, byte streams and uploaded files
"""

# Set default logging handler to avoid "No handler found" warnings.
import logging
from logging import NullHandler
from typing import TextIO

from . import exceptions
from ._collections import HeaderBag
from ._version import __version__
from .message import BaseHTTPMessage
from .request import Request, ServerRequest
from .response import REASON_PHRASES, Response
from .stream import ByteStream
from .upload import UploadedFile, UploadError
from .util.url import Uri, parse_uri

__version__ = __version__

__all__ = (
    "BaseHTTPMessage",
    "ByteStream",
    "HeaderBag",
    "REASON_PHRASES",
    "Request",
    "Response",
    "ServerRequest",
    "UploadError",
    "UploadedFile",
    "Uri",
    "add_stderr_logger",
    "exceptions",
    "parse_uri",
)

logging.getLogger(__name__).addHandler(NullHandler())


def add_stderr_logger(level: int = logging.DEBUG) -> "logging.StreamHandler[TextIO]":
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    # even if httpmessage is vendored within another package.
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# ... Clean up.
del NullHandler
