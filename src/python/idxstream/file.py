# idxstream/file.py
"""The Reader, the RangeStream it hands out, and the `open` factory."""

import os
from typing import AsyncIterator, Iterator, Optional, Union, overload

import numpy as np

from . import config
from .abc import IdxFileBase
from .dataclasses import Geometry, Window
from .header import read_geometry
from .lowlevel import FileSource
from .logging_config import get_logger
from .stream.rechunk import rechunk, iter_rechunk
from ._internal import numpy_utils

logger = get_logger(__name__)


def open(
    path: Union[str, "os.PathLike[str]"],
    mode: str = 'r',
    *,
    piece_size: Optional[int] = None
) -> "Reader":
    """
    Opens an IDX file for reading.
    This function is the primary entry point for the library.

    Args:
        path: Path to the IDX file (e.g. 'MNIST/train-labels-idx1-ubyte').
        mode: Only 'r' is supported; IDX files are never written.
        piece_size: (Optional) Bytes requested per OS read while streaming.
                    Defaults to `config.READ_PIECE_SIZE`.

    Returns:
        A Reader, typically used within a `with` statement.

    Raises:
        ValueError: If mode or arguments are invalid.
        SourceIOError: If the file cannot be opened or read.
        MalformedHeaderError: If the header disagrees with the file.
    """
    if mode != 'r':
        raise ValueError(f"Unsupported mode: '{mode}'. IDX files are read-only, use 'r'.")
    return Reader(path, piece_size=piece_size)


class RangeStream:
    """
    The bytes of one record window, read lazily from its own file handle.

    Iterate with `async for` (reads run on an executor) or a plain `for`.
    Pieces are at most `piece_size` bytes and follow file order; their
    boundaries have nothing to do with record boundaries.

    The handle is released when the window has been read, when the stream
    is closed, or when its Reader opens another window. Closing the stream
    while a read is in flight makes that read end the stream. A stream
    closed before its window was fully read reports `cancelled`, so
    consumers can tell it apart from a file that ended early.
    """
    def __init__(self, path: str, geometry: Geometry, window: Window, piece_size: int):
        if piece_size <= 0:
            raise ValueError(f"piece_size must be positive, got {piece_size}")
        self.path = path
        self.geometry = geometry
        self.window = window
        self.piece_size = piece_size

        start, stop = window.byte_range(geometry)
        self._remaining = stop - start
        self._reading = False
        self._closed = False
        self._cancelled = False
        self._source: Optional[FileSource] = FileSource(path)
        try:
            self._source.seek(start)
        except BaseException:
            self._release()
            raise

    def _release(self) -> None:
        if self._source is not None:
            self._source.close()
            self._source = None

    def _next_size(self) -> int:
        if self._closed or self._remaining == 0 or self._source is None:
            # A pending read releases the handle when it returns.
            if not self._reading:
                self._release()
            return 0
        if self._reading:
            raise RuntimeError("RangeStream does not support concurrent reads.")
        return min(self.piece_size, self._remaining)

    def _take(self, data: bytes) -> bool:
        """Accounts for a finished read; returns False at end of stream."""
        if self._closed:
            self._release()
            return False
        if not data:
            logger.warning(
                "%s ended %d bytes before the end of its window",
                self.path, self._remaining
            )
            self._release()
            return False
        self._remaining -= len(data)
        if self._remaining == 0:
            self._release()
        return True

    def __aiter__(self) -> "RangeStream":
        return self

    async def __anext__(self) -> bytes:
        size = self._next_size()
        if size == 0:
            raise StopAsyncIteration
        self._reading = True
        try:
            data = await self._source.read_async(size)
        except BaseException:
            self._closed = True
            self._release()
            raise
        finally:
            self._reading = False
        if not self._take(data):
            raise StopAsyncIteration
        return data

    def __iter__(self) -> "RangeStream":
        return self

    def __next__(self) -> bytes:
        size = self._next_size()
        if size == 0:
            raise StopIteration
        try:
            data = self._source.read(size)
        except BaseException:
            self._closed = True
            self._release()
            raise
        if not self._take(data):
            raise StopIteration
        return data

    @property
    def remaining(self) -> int:
        """Bytes of the window not yet delivered."""
        return self._remaining

    def close(self) -> None:
        """Stops the stream; the handle is released now or when the pending read returns."""
        if not self.closed and self._remaining > 0:
            self._cancelled = True
        self._closed = True
        if not self._reading:
            self._release()

    async def aclose(self) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed or self._source is None

    @property
    def cancelled(self) -> bool:
        """True if the stream was closed before its window was fully read."""
        return self._cancelled


class Reader(IdxFileBase):
    """
    A handle on one IDX file.
    Created via `idxstream.open(path)`.

    The header is decoded once, here. Windows of records are then read with
    `open_window` (raw bytes) or `records` (one chunk per record); only one
    window is active at a time.
    """
    def __init__(
        self,
        path: Union[str, "os.PathLike[str]"],
        *,
        piece_size: Optional[int] = None
    ):
        self.path = os.fspath(path)
        self.piece_size = config.READ_PIECE_SIZE if piece_size is None else piece_size
        self.geometry: Geometry = read_geometry(self.path)
        self._stream: Optional[RangeStream] = None
        self._source: Optional[FileSource] = None
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("Operation attempted on a closed Reader.")

    @property
    def active_stream(self) -> Optional[RangeStream]:
        """The most recently opened window, if it is still open."""
        if self._stream is not None and self._stream.closed:
            self._stream = None
        return self._stream

    def open_window(self, begin: int = 0, count: Optional[int] = None) -> RangeStream:
        """
        Returns a RangeStream over records `[begin, begin + count)`.

        Opening a window closes the one opened before it.

        Args:
            begin: Index of the first record, in `[0, len(self))`.
            count: Number of records; None reads to the end of the file.

        Raises:
            RangeError: If the window is out of bounds. Nothing is opened
                        or closed in that case.
        """
        self._check_open()
        window = Window.resolve(self.geometry, begin, count)
        previous = self.active_stream
        if previous is not None:
            logger.debug("Closing window %s of %s", previous.window, self.path)
            previous.close()
        self._stream = RangeStream(self.path, self.geometry, window, self.piece_size)
        logger.debug("Opened window %s of %s", window, self.path)
        return self._stream

    def records(
        self,
        begin: int = 0,
        count: Optional[int] = None,
        *,
        strict: bool = False
    ) -> AsyncIterator[bytes]:
        """Async iterator of the window's records, one `element_size` chunk each."""
        return rechunk(self.open_window(begin, count), self.geometry.element_size, strict=strict)

    def iter_records(
        self,
        begin: int = 0,
        count: Optional[int] = None,
        *,
        strict: bool = False
    ) -> Iterator[bytes]:
        """Synchronous counterpart of `records`."""
        return iter_rechunk(self.open_window(begin, count), self.geometry.element_size, strict=strict)

    def __len__(self) -> int:
        return self.geometry.length

    def _random_access(self) -> FileSource:
        if self._source is None:
            self._source = FileSource(self.path)
        return self._source

    def read_record(self, index: int) -> bytes:
        """Reads one record by index; negative indices count from the end."""
        self._check_open()
        resolved = index if index >= 0 else index + len(self)
        if not (0 <= resolved < len(self)):
            raise IndexError("Record index out of range")
        return self._read_span(resolved, 1)

    def _read_span(self, begin: int, count: int) -> bytes:
        start, stop = Window(begin, count).byte_range(self.geometry)
        source = self._random_access()
        source.seek(start)
        return source.read(stop - start)

    @overload
    def __getitem__(self, key: int) -> np.ndarray: ...

    @overload
    def __getitem__(self, key: slice) -> np.ndarray: ...

    def __getitem__(self, key: Union[int, slice]) -> np.ndarray:
        """
        Reads and decodes records by index or slice.

        - `reader[5]` decodes the 6th record to an array of the record shape.
        - `reader[2:5]` decodes records 2, 3, and 4 into one array whose
          first axis has length 3.
        """
        if isinstance(key, int):
            return numpy_utils.decode_record(self.read_record(key), self.geometry)
        elif isinstance(key, slice):
            self._check_open()
            start, stop, step = key.indices(len(self))
            if step != 1:
                raise IndexError("Slicing with a step is not supported.")
            if stop <= start:
                return numpy_utils.decode_records(b"", self.geometry)
            return numpy_utils.decode_records(self._read_span(start, stop - start), self.geometry)
        else:
            raise TypeError(f"Index must be an integer or slice, not {type(key).__name__}")

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        if self._source is not None:
            self._source.close()
            self._source = None
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed
