import io
from typing import Callable, Tuple

# Base Exceptions


class HTTPError(Exception):
    """Base exception used by this module."""

    pass


_TYPE_REDUCE_RESULT = Tuple[Callable[..., object], Tuple[object, ...]]


class InvalidArgumentError(ValueError, HTTPError):
    """Raised when a malformed or out-of-range value is given to a message."""

    pass


class StreamError(HTTPError):
    """Base exception for errors raised by :class:`~httpmessage.stream.ByteStream`."""

    pass


class UploadedFileError(HTTPError):
    """Base exception for errors raised by :class:`~httpmessage.upload.UploadedFile`."""

    pass


# Leaf Exceptions


class InvalidHeader(InvalidArgumentError):
    """The header provided was somehow invalid."""

    pass


class InvalidMethod(InvalidArgumentError):
    """Raised when a request method is not in the allowed set."""

    def __init__(self, method: object) -> None:
        super().__init__(f"Invalid HTTP method provided for request: {method!r}")
        self.method = method

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.method,)


class InvalidStatus(InvalidArgumentError):
    """Raised when a response status code is outside of 100-599."""

    def __init__(self, status: object) -> None:
        super().__init__(f"Invalid status code provided for response: {status!r}")
        self.status = status

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.status,)


class LocationValueError(InvalidArgumentError):
    """Raised when there is something wrong with a given URI component."""

    pass


class LocationParseError(LocationValueError):
    """Raised when :func:`~httpmessage.util.url.parse_uri` fails to parse the input."""

    def __init__(self, location: str) -> None:
        message = f"Unable to parse URI: {location}"
        super().__init__(message)

        self.location = location

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.location,)


class UnreadableStreamError(StreamError, io.UnsupportedOperation):
    """Raised when reading from a detached, closed or write-only stream."""

    pass


class UnwritableStreamError(StreamError, io.UnsupportedOperation):
    """Raised when writing to a detached, closed or read-only stream."""

    pass


class UnseekableStreamError(StreamError, io.UnsupportedOperation):
    """Raised when a stream cannot be repositioned."""

    pass


class StreamPositionError(StreamError):
    """Raised when the position of a stream cannot be determined."""

    pass


class StreamReadError(StreamError):
    """Raised when the remaining contents of a stream cannot be read."""

    pass


class UploadInactiveError(UploadedFileError):
    """Raised when the stream of a failed upload is accessed."""

    pass


class AlreadyMovedError(UploadedFileError):
    """Raised when an uploaded file is used after it has been moved."""

    pass


class MoveFailedError(UploadedFileError):
    """Raised when an uploaded file could not be moved.

    The original error is available as ``__cause__``.
    """

    def __init__(
        self, target_path: str, message: str = "UploadedFile move failed"
    ) -> None:
        super().__init__(f"{message}: {target_path}")
        self.target_path = target_path
        self.reason = message

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.target_path, self.reason)
