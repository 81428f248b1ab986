import io
import logging
import os
import re
import stat
import typing
from typing import Any, Dict, Optional, Union

from .exceptions import (
    InvalidArgumentError,
    StreamError,
    StreamPositionError,
    StreamReadError,
    UnreadableStreamError,
    UnseekableStreamError,
    UnwritableStreamError,
)
from .util.util import to_bytes

if typing.TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["ByteStream"]

log = logging.getLogger(__name__)

_TYPE_WRITE_DATA = Union[str, bytes, bytearray, memoryview]


def _synthesize_mode(handle: Any) -> str:
    # io.BytesIO, gzip.GzipFile and friends don't expose a string mode.
    readable = _call_flag(handle, "readable")
    writable = _call_flag(handle, "writable")
    if readable and writable:
        return "rb+"
    elif writable:
        return "wb"
    return "rb"


def _call_flag(handle: Any, name: str) -> bool:
    method = getattr(handle, name, None)
    if method is None:
        return False
    try:
        return bool(method())
    except (OSError, ValueError):
        return False


class ByteStream(io.IOBase):
    """
    A readable, writable and seekable view over one binary file object.

    The capabilities of the stream are derived once, from the open mode of
    the wrapped handle, and never change afterwards. Once the stream is
    closed or its handle is taken back with :meth:`detach`, every read,
    write and seek fails.

    ``ByteStream`` is an :class:`io.IOBase` so it works as a context
    manager, and a stream that is garbage collected while still open
    closes its handle. Prefer ``with`` or an explicit :meth:`close`.

    :param handle:
        A binary file object, such as the return value of ``open(path, "rb")``,
        an :class:`io.BytesIO` or a socket file from ``sock.makefile("rb")``.
    """

    #: Open modes that allow reading. Matched anywhere in the mode string.
    READABLE_MODES = re.compile(r"r|[waxc]b?\+")
    #: Open modes that allow writing.
    WRITABLE_MODES = re.compile(r"rb?\+|[waxc]")

    #: Number of bytes moved per copy when a stream is written elsewhere.
    CHUNK_SIZE = 64 * 1024

    def __init__(self, handle: typing.BinaryIO) -> None:
        # Set first so that a failed constructor leaves a closed stream for
        # io.IOBase.__del__ to find.
        self._handle: Optional[typing.BinaryIO] = None
        self._size: Optional[int] = None
        self._eof = False
        self._meta: Dict[str, Any] = {}
        self._readable = False
        self._writable = False
        self._seekable = False

        if isinstance(handle, io.TextIOBase):
            raise InvalidArgumentError("ByteStream requires a binary file object")
        if not (hasattr(handle, "read") or hasattr(handle, "write")):
            raise InvalidArgumentError(
                f"ByteStream requires a file object, not {type(handle).__name__}"
            )
        if getattr(handle, "closed", False):
            raise InvalidArgumentError("ByteStream requires an open file object")

        mode = getattr(handle, "mode", None)
        if not isinstance(mode, str):
            mode = _synthesize_mode(handle)

        self._readable = self.READABLE_MODES.search(mode) is not None
        self._writable = self.WRITABLE_MODES.search(mode) is not None
        self._seekable = self._detect_seekable(handle)

        uri = getattr(handle, "name", None)
        if isinstance(uri, bytes):
            uri = os.fsdecode(uri)
        self._meta = {
            "mode": mode,
            "seekable": self._seekable,
            "uri": uri if isinstance(uri, str) else None,
        }
        self._handle = handle

    @staticmethod
    def _detect_seekable(handle: Any) -> bool:
        if not _call_flag(handle, "seekable"):
            return False
        try:
            handle.seek(0, os.SEEK_CUR)
        except (OSError, ValueError):
            return False
        return True

    @classmethod
    def create(cls, content: _TYPE_WRITE_DATA = b"") -> "Self":
        """
        Creates an in-memory stream that can be read and written, holding
        ``content``. The position is left at the end of the content.
        """
        stream = cls(io.BytesIO())
        if content:
            stream.write(content)
        return stream

    @classmethod
    def from_file(
        cls, filename: Union[str, "os.PathLike[str]"], mode: str = "rb"
    ) -> "Self":
        """
        Opens ``filename`` and wraps the file. The stream is always opened in
        binary mode, so ``"r"`` and ``"rb"`` are the same thing.

        :raises InvalidArgumentError: if ``mode`` doesn't start with one of
            ``r``, ``w``, ``a`` or ``x``, or ``filename`` is empty.
        :raises StreamError: if the file cannot be opened.
        """
        if not mode or mode[0] not in "rwax":
            raise InvalidArgumentError(f"The mode {mode!r} is invalid.")
        if not os.fspath(filename):
            raise InvalidArgumentError("Filename cannot be empty.")
        if "b" not in mode:
            mode = mode[0] + "b" + mode[1:]

        try:
            handle = open(os.fspath(filename), mode)
        except (OSError, ValueError) as e:
            raise StreamError(
                f"The file {os.fspath(filename)!r} cannot be opened."
            ) from e
        log.debug("Opened %r with mode %r", os.fspath(filename), mode)
        return cls(handle)  # type: ignore[arg-type]

    def __bytes__(self) -> bytes:
        """Reads the whole stream from the start. Never raises, failures give
        an empty bytestring."""
        try:
            if self.seekable():
                self.rewind()
            return self.get_contents()
        except StreamError:
            return b""

    def __str__(self) -> str:
        return bytes(self).decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        if self._handle is None:
            return f"<{type(self).__name__} detached>"
        mode, uri = self._meta["mode"], self._meta["uri"]
        return f"<{type(self).__name__} mode={mode!r} uri={uri!r}>"

    # Overrides from io.IOBase
    @property
    def closed(self) -> bool:
        return self._handle is None

    def close(self) -> None:
        """Closes the underlying handle. Closing twice does nothing."""
        if self._handle is not None:
            handle = self._handle
            try:
                if not getattr(handle, "closed", False):
                    handle.close()
            finally:
                self.detach()
            log.debug("Closed stream %r", getattr(handle, "name", handle))
        io.IOBase.close(self)

    def detach(self) -> Optional[typing.BinaryIO]:
        """
        Gives the underlying handle back to the caller and leaves the stream
        unusable. Returns ``None`` if the stream has no handle anymore.
        """
        handle = self._handle
        if handle is None:
            return None
        self._handle = None
        self._meta = {}
        self._size = None
        self._readable = False
        self._writable = False
        self._seekable = False
        log.debug("Detached stream %r", getattr(handle, "name", handle))
        return handle

    def fileno(self) -> int:
        if self._handle is None:
            raise OSError("ByteStream has no file to get a fileno from")
        return self._handle.fileno()

    def flush(self) -> None:
        if self._handle is not None and not getattr(self._handle, "closed", False):
            flush = getattr(self._handle, "flush", None)
            if flush is not None:
                flush()

    def readable(self) -> bool:
        return self._readable

    def writable(self) -> bool:
        return self._writable

    def seekable(self) -> bool:
        return self._seekable

    def read(self, size: Optional[int] = -1) -> bytes:
        """
        Reads up to ``size`` bytes, or everything that is left if ``size``
        is negative or ``None``.
        """
        if self._handle is None:
            raise UnreadableStreamError("Stream is detached")
        if not self._readable:
            raise UnreadableStreamError("Cannot read from non-readable stream")
        if size is None:
            size = -1
        try:
            data = self._handle.read(size)
        except (OSError, ValueError) as e:
            raise StreamReadError(f"Unable to read from stream: {e}") from e
        # Non-blocking handles return None when nothing is available yet.
        if data is None:
            return b""
        if size < 0 or len(data) < size:
            self._eof = True
        return bytes(data)

    def readinto(self, b: bytearray) -> int:
        temp = self.read(len(b))
        if len(temp) == 0:
            return 0
        else:
            b[: len(temp)] = temp
            return len(temp)

    def write(self, data: _TYPE_WRITE_DATA) -> int:
        """Writes ``data`` and returns the number of bytes written. ``str``
        is encoded as UTF-8."""
        if self._handle is None:
            raise UnwritableStreamError("Stream is detached")
        if not self._writable:
            raise UnwritableStreamError("Cannot write to a non-writable stream")
        data = to_bytes(data)
        self._size = None
        try:
            written = self._handle.write(data)
        except (OSError, ValueError) as e:
            raise UnwritableStreamError(f"Unable to write to stream: {e}") from e
        return len(data) if written is None else written

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if self._handle is None:
            raise UnseekableStreamError("Stream is detached")
        if not self._seekable:
            raise UnseekableStreamError("Stream is not seekable")
        try:
            position = self._handle.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise UnseekableStreamError(
                f"Unable to seek to stream position {offset} with whence {whence}"
            ) from e
        self._eof = False
        return position

    def rewind(self) -> None:
        """Seeks back to the start of the stream."""
        self.seek(0)

    def tell(self) -> int:
        if self._handle is None:
            raise StreamPositionError("Stream is detached")
        try:
            return self._handle.tell()
        except (AttributeError, OSError, ValueError) as e:
            raise StreamPositionError("Unable to determine stream position") from e

    def eof(self) -> bool:
        """True once a read hit the end of the stream, and always True for a
        detached stream."""
        if self._handle is None:
            return True
        return self._eof

    def get_contents(self) -> bytes:
        """Reads everything from the current position to the end."""
        if self._handle is None or not self._readable:
            raise StreamReadError("Unable to read stream contents")
        try:
            data = self._handle.read()
        except (OSError, ValueError) as e:
            raise StreamReadError("Unable to read stream contents") from e
        self._eof = True
        return b"" if data is None else bytes(data)

    def get_size(self) -> Optional[int]:
        """
        Returns the size of the stream in bytes, or ``None`` when it can't be
        known (pipes, sockets, and detached streams).
        """
        if self._size is not None or self._handle is None:
            return self._size

        handle = self._handle
        if isinstance(handle, io.BytesIO):
            with handle.getbuffer() as view:
                self._size = view.nbytes
            return self._size

        try:
            fileno = handle.fileno()
        except (AttributeError, OSError, ValueError):
            fileno = None

        if fileno is not None:
            if self._writable:
                self.flush()
            st = os.fstat(fileno)
            if stat.S_ISREG(st.st_mode):
                self._size = st.st_size
            return self._size

        if self._seekable:
            try:
                position = handle.tell()
                self._size = handle.seek(0, os.SEEK_END)
                handle.seek(position)
            except (OSError, ValueError):
                self._size = None
        return self._size

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Returns the ``mode``, ``seekable`` and ``uri`` of the stream as a
        ``dict``, or only the value of ``key``. A detached stream has no
        metadata.
        """
        if key is None:
            return dict(self._meta)
        return self._meta.get(key)
