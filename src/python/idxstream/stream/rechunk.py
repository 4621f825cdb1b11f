# idxstream/stream/rechunk.py
"""
Resegmentation of arbitrarily sized byte chunks into whole records.
"""
from typing import Any, AsyncIterator, Iterable, Iterator, List, Optional, Union

from ..exceptions import TruncatedRecordError
from ..logging_config import get_logger
from .._internal.iterators import ensure_async_iterator, ensure_iterator

logger = get_logger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]

class ShortRecord(bytes):
    """
    The final chunk of a stream that ended partway through a record.

    It compares and behaves like the bytes it holds; `expected_size`
    records how long a complete record would have been.
    """
    is_short = True

    def __new__(cls, data: BytesLike, expected_size: int) -> "ShortRecord":
        obj = super().__new__(cls, data)
        obj.expected_size = expected_size
        return obj

    @property
    def missing(self) -> int:
        """How many bytes the record lacks."""
        return self.expected_size - len(self)

    def to_error(self) -> TruncatedRecordError:
        return TruncatedRecordError(self.expected_size, len(self))


def is_short(chunk: bytes) -> bool:
    """True if `chunk` is the truncated tail of a rechunked stream."""
    return isinstance(chunk, ShortRecord)


class Rechunker:
    """
    Buffers partial records between input chunks.

    Every chunk returned by `feed` is exactly `element_size` bytes long;
    the bytes of an unfinished record are carried over to the next call.
    `flush` returns whatever is left once the input is exhausted.
    """
    def __init__(self, element_size: int):
        if element_size <= 0:
            raise ValueError(f"element_size must be positive, got {element_size}")
        self.element_size = element_size
        self._carry = bytearray()

    @property
    def pending(self) -> int:
        """Number of carried-over bytes, always less than `element_size`."""
        return len(self._carry)

    def feed(self, data: BytesLike) -> List[bytes]:
        """Consumes one input chunk and returns the records it completes."""
        size = self.element_size
        view = memoryview(data).cast("B")
        length = len(view)
        offset = 0
        records: List[bytes] = []

        if self._carry:
            needed = size - len(self._carry)
            if length < needed:
                self._carry += view
                return records
            self._carry += view[:needed]
            records.append(bytes(self._carry))
            self._carry.clear()
            offset = needed

        while length - offset >= size:
            records.append(bytes(view[offset:offset + size]))
            offset += size

        if offset < length:
            self._carry += view[offset:]
        return records

    def flush(self) -> Optional[ShortRecord]:
        """Returns the carried-over bytes as a ShortRecord, or None if empty."""
        if not self._carry:
            return None
        tail = ShortRecord(self._carry, self.element_size)
        self._carry.clear()
        return tail


def _was_cancelled(source: Any, rechunker: Rechunker) -> bool:
    """True if `source` was closed early; the carried-over bytes are then dropped."""
    if not getattr(source, "cancelled", False):
        return False
    if rechunker.pending:
        logger.debug("Dropping %d carried-over bytes of a cancelled stream", rechunker.pending)
        rechunker.flush()
    return True


def _finish(tail: ShortRecord, strict: bool) -> ShortRecord:
    logger.warning(
        "Input ended mid-record: %d of %d bytes", len(tail), tail.expected_size
    )
    if strict:
        raise tail.to_error()
    return tail


async def rechunk(
    source: Any,
    element_size: int,
    *,
    strict: bool = False
) -> AsyncIterator[bytes]:
    """
    Yields `source`'s bytes regrouped into records of `element_size` bytes.

    Args:
        source: An async or sync iterable of byte chunks of any size.
        element_size: The record size in bytes.
        strict: If True, a trailing partial record raises
                TruncatedRecordError instead of being yielded.
                A source that reports `cancelled` ends without one.

    Yields:
        bytes of exactly `element_size`, except possibly a final ShortRecord.
    """
    rechunker = Rechunker(element_size)
    async for data in ensure_async_iterator(source):
        for record in rechunker.feed(data):
            yield record
    if _was_cancelled(source, rechunker):
        return
    tail = rechunker.flush()
    if tail is not None:
        yield _finish(tail, strict)


def iter_rechunk(
    source: Iterable[BytesLike],
    element_size: int,
    *,
    strict: bool = False
) -> Iterator[bytes]:
    """Synchronous counterpart of `rechunk`."""
    rechunker = Rechunker(element_size)
    for data in ensure_iterator(source):
        yield from rechunker.feed(data)
    if _was_cancelled(source, rechunker):
        return
    tail = rechunker.flush()
    if tail is not None:
        yield _finish(tail, strict)
