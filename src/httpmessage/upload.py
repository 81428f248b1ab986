import enum
import logging
import os
import shutil
from typing import Callable, Optional, Union

from .exceptions import (
    AlreadyMovedError,
    InvalidArgumentError,
    MoveFailedError,
    UploadInactiveError,
)
from .stream import ByteStream

__all__ = ["UploadError", "UploadedFile", "copy_stream", "move_stream"]

log = logging.getLogger(__name__)

_TYPE_PATH = Union[str, "os.PathLike[str]"]
_TYPE_MOVER = Callable[[ByteStream, str], None]


class UploadError(enum.IntEnum):
    """Outcome of a file upload, numbered the way form-handling servers
    report them."""

    OK = 0
    #: The file is larger than the server-wide upload limit.
    INI_SIZE = 1
    #: The file is larger than the limit set by the form.
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    #: An extension of the server stopped the upload.
    EXTENSION = 8


def copy_stream(stream: ByteStream, target_path: str) -> None:
    """
    Writes the full contents of ``stream`` to ``target_path``, from the
    start of the stream when it can seek.
    """
    if stream.seekable():
        stream.rewind()
    with open(target_path, "wb") as fp:
        try:
            while True:
                chunk = stream.read(stream.CHUNK_SIZE)
                if not chunk:
                    break
                fp.write(chunk)
        except BaseException:
            fp.close()
            # Don't leave a partial file behind.
            log.debug("Copy to %s failed, removing it", target_path)
            os.remove(target_path)
            raise


def move_stream(stream: ByteStream, target_path: str) -> None:
    """
    Default strategy of :meth:`UploadedFile.move_to`. A stream backed by a
    file on disk is moved with :func:`shutil.move`, anything else is copied
    with :func:`copy_stream`.
    """
    source = stream.get_metadata("uri")
    if source and os.path.isfile(source):
        shutil.move(source, target_path)
    else:
        copy_stream(stream, target_path)


class UploadedFile:
    """
    A file sent by a client, as handed over by the code that parsed the
    request.

    An upload can be moved to its final place once. Afterwards, and for
    uploads that failed, the stream can no longer be used.

    :param stream:
        Contents of the upload. Ignored unless ``error`` is
        :attr:`UploadError.OK`.

    :param size:
        Size in bytes. Taken from the stream when not given.

    :param error:
        An :class:`UploadError`, or its integer value.

    :param client_filename:
        Filename sent by the client. Don't trust it.

    :param client_media_type:
        Media type sent by the client. Don't trust it either.

    :param mover:
        Callable taking the stream and a target path that does the actual
        move. Servers that keep uploads in a protected location provide
        their own. Defaults to :func:`move_stream`.
    """

    def __init__(
        self,
        stream: Optional[ByteStream],
        size: Optional[int] = None,
        error: Union[UploadError, int] = UploadError.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
        mover: Optional[_TYPE_MOVER] = None,
    ) -> None:
        try:
            if isinstance(error, bool) or not isinstance(error, int):
                raise ValueError(error)
            self._error = UploadError(error)
        except ValueError as e:
            raise InvalidArgumentError(
                f"Invalid error status for UploadedFile: {error!r}"
            ) from e

        if client_filename is not None and not isinstance(client_filename, str):
            raise InvalidArgumentError(
                "Upload file client filename must be a string or None"
            )
        if client_media_type is not None and not isinstance(client_media_type, str):
            raise InvalidArgumentError(
                "Upload file client media type must be a string or None"
            )
        self._client_filename = client_filename
        self._client_media_type = client_media_type

        self._stream: Optional[ByteStream] = None
        if self._error == UploadError.OK:
            if not isinstance(stream, ByteStream):
                raise InvalidArgumentError(
                    "Upload stream must be a ByteStream, "
                    f"not {type(stream).__name__}"
                )
            self._stream = stream

        if size is None and self._stream is not None:
            size = self._stream.get_size()
        self._size = size
        self._mover: _TYPE_MOVER = mover if mover is not None else move_stream
        self._moved = False

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self._client_filename!r} "
            f"error={self._error.name} moved={self._moved}>"
        )

    def _validate_active(self) -> None:
        if self._error != UploadError.OK:
            raise UploadInactiveError(
                f"Cannot retrieve stream due to upload error {self._error.name}"
            )
        if self._moved:
            raise AlreadyMovedError(
                "Cannot retrieve stream after it has already been moved"
            )

    @property
    def stream(self) -> ByteStream:
        return self.get_stream()

    def get_stream(self) -> ByteStream:
        """
        :raises UploadInactiveError: if the upload failed.
        :raises AlreadyMovedError: if the file was moved already.
        """
        self._validate_active()
        assert self._stream is not None
        return self._stream

    def move_to(self, target_path: _TYPE_PATH) -> None:
        """
        Moves the uploaded file to ``target_path`` and closes its stream.

        :raises UploadInactiveError: if the upload failed.
        :raises AlreadyMovedError: if the file was moved already.
        :raises MoveFailedError: if the mover raised. The original error is
            the ``__cause__``.
        """
        self._validate_active()
        assert self._stream is not None

        if not isinstance(target_path, (str, os.PathLike)) or not os.fspath(
            target_path
        ):
            raise InvalidArgumentError(
                f"Invalid path provided for move operation: {target_path!r}"
            )
        target_path = os.fspath(target_path)

        try:
            self._mover(self._stream, target_path)
        except Exception as e:
            log.debug("Moving upload to %r failed: %r", target_path, e)
            raise MoveFailedError(target_path) from e

        self._moved = True
        self._stream.close()
        log.debug("Moved upload %r to %r", self._client_filename, target_path)

    @property
    def moved(self) -> bool:
        return self._moved

    @property
    def size(self) -> Optional[int]:
        return self._size

    @property
    def error(self) -> UploadError:
        return self._error

    @property
    def client_filename(self) -> Optional[str]:
        return self._client_filename

    @property
    def client_media_type(self) -> Optional[str]:
        return self._client_media_type
