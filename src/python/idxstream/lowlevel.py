# idxstream/lowlevel.py
"""
A low-level wrapper around an OS file handle.

This module isolates the OS boundary from the rest of the library: every
read goes through here and every OSError leaves as a SourceIOError.
"""

import asyncio
import builtins
import os
from typing import BinaryIO, Optional

from .exceptions import SourceIOError
from .logging_config import get_logger

logger = get_logger(__name__)

class FileSource:
    """
    A thin, direct wrapper over a binary file opened for reading.
    It handles seeking, blocking and executor-backed reads, and exception
    translation.
    """
    def __init__(self, path: str):
        self.path = os.fspath(path)
        try:
            self._handle: Optional[BinaryIO] = builtins.open(self.path, "rb")
        except OSError as e:
            logger.error("Failed to open %s: %s", self.path, e)
            raise SourceIOError.from_os_error(e, self.path) from e

    def _checked_handle(self) -> BinaryIO:
        if self._handle is None:
            raise ValueError("Operation attempted on a closed FileSource.")
        return self._handle

    @property
    def size(self) -> int:
        """The size of the file in bytes, as reported by the OS."""
        handle = self._checked_handle()
        try:
            return os.fstat(handle.fileno()).st_size
        except OSError as e:
            raise SourceIOError.from_os_error(e, self.path) from e

    def seek(self, offset: int) -> None:
        handle = self._checked_handle()
        try:
            handle.seek(offset)
        except OSError as e:
            raise SourceIOError.from_os_error(e, self.path) from e

    def read(self, size: int) -> bytes:
        """Reads up to `size` bytes; an empty result means end of file."""
        handle = self._checked_handle()
        try:
            return handle.read(size)
        except OSError as e:
            logger.error("Read of %d bytes from %s failed: %s", size, self.path, e)
            raise SourceIOError.from_os_error(e, self.path) from e

    async def read_async(self, size: int) -> bytes:
        """
        Reads up to `size` bytes without blocking the event loop.

        The blocking read runs on the loop's default executor; this call is
        the suspension point of every stream built on top of a FileSource.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read, size)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    @property
    def closed(self) -> bool:
        return self._handle is None
