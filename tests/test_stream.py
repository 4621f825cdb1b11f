# tests/test_stream.py
"""
Tests for rechunking, collation, and the grouped reader built on them.
"""
import asyncio
from pathlib import Path

import numpy as np
import pytest

from idxstream import (
    ABSENT, DataType, GroupedReader, RangeError, Rechunker, ShortRecord, Slot,
    TruncatedRecordError, collate, iter_collate, iter_rechunk, open as idx_open, rechunk,
)
from idxstream.stream import is_short


def random_split(data: bytes, rng: np.random.Generator, max_piece: int) -> list:
    """Splits `data` into consecutive pieces of random lengths in [1, max_piece]."""
    pieces = []
    offset = 0
    while offset < len(data):
        size = int(rng.integers(1, max_piece + 1))
        pieces.append(data[offset:offset + size])
        offset += size
    return pieces


async def agen(items, delay: float = 0.0):
    for item in items:
        if delay:
            await asyncio.sleep(delay)
        yield item

# --- Rechunker ---

def test_rechunker_carries_partial_records():
    rechunker = Rechunker(4)
    assert rechunker.feed(b"ab") == []
    assert rechunker.pending == 2
    assert rechunker.feed(b"c") == []
    assert rechunker.feed(b"defghijkl") == [b"abcd", b"efgh", b"ijkl"]
    assert rechunker.pending == 0
    assert rechunker.flush() is None


def test_rechunker_flush_returns_short_record():
    rechunker = Rechunker(3)
    assert rechunker.feed(bytearray(b"abcde")) == [b"abc"]
    tail = rechunker.flush()
    assert isinstance(tail, ShortRecord)
    assert tail == b"de"
    assert tail.expected_size == 3
    assert tail.missing == 1
    assert rechunker.pending == 0


def test_rechunker_rejects_bad_size():
    with pytest.raises(ValueError, match="element_size must be positive"):
        Rechunker(0)


@pytest.mark.parametrize("element_size, num_records, max_piece", [
    (1, 20, 3),
    (7, 13, 4),      # pieces smaller than a record
    (7, 13, 30),     # pieces spanning several records
    (784, 5, 1000),
])
def test_rechunk_exactness(element_size, num_records, max_piece):
    """Arbitrary input splits always come out as whole records, in order."""
    rng = np.random.default_rng(seed=element_size)
    data = rng.integers(0, 256, size=element_size * num_records, dtype=np.uint8).tobytes()
    pieces = random_split(data, rng, max_piece)

    records = list(iter_rechunk(pieces, element_size))

    assert len(records) == num_records
    assert all(len(record) == element_size for record in records)
    assert not any(is_short(record) for record in records)
    assert b"".join(records) == data


@pytest.mark.asyncio
async def test_rechunk_async_source():
    data = bytes(range(60))
    pieces = random_split(data, np.random.default_rng(seed=1), 11)

    records = [record async for record in rechunk(agen(pieces), 6)]

    assert records == [data[i:i + 6] for i in range(0, 60, 6)]


@pytest.mark.asyncio
async def test_rechunk_accepts_sync_source():
    records = [record async for record in rechunk([b"abc", b"def"], 2)]
    assert records == [b"ab", b"cd", b"ef"]


@pytest.mark.parametrize("length", [1, 9, 22])
def test_rechunk_truncation_signal(length):
    element_size = 4
    data = bytes(range(length))
    records = list(iter_rechunk(random_split(data, np.random.default_rng(length), 5), element_size))

    tail = records[-1]
    assert is_short(tail)
    assert len(tail) == length % element_size
    assert tail.expected_size == element_size
    assert b"".join(records) == data


def test_rechunk_strict_raises_on_truncation():
    with pytest.raises(TruncatedRecordError, match="expected 4 bytes, got 2") as excinfo:
        list(iter_rechunk([b"abcdef"], 4, strict=True))
    assert excinfo.value.expected == 4
    assert excinfo.value.actual == 2


@pytest.mark.asyncio
async def test_rechunk_async_strict_raises_on_truncation():
    with pytest.raises(TruncatedRecordError):
        _ = [record async for record in rechunk(agen([b"abc"]), 2, strict=True)]


def test_rechunk_empty_source():
    assert list(iter_rechunk([], 3)) == []
    assert list(iter_rechunk([b""], 3)) == []

# --- Collator ---

def values(step):
    return [slot.value for slot in step]


@pytest.mark.asyncio
async def test_collate_alignment():
    """Lengths 3 and 5 give 5 steps; the short source reports absent slots."""
    short = [bytes([i]) for i in range(3)]
    long = [bytes([10 + i]) for i in range(5)]

    steps = [step async for step in collate([agen(short), agen(long)])]

    assert len(steps) == 5
    for i, (first, second) in enumerate(steps):
        assert second == Slot(bytes([10 + i]))
        if i < 3:
            assert first.present and first.value == bytes([i])
        else:
            assert first is ABSENT
            assert first.exhausted and first.value is None


@pytest.mark.asyncio
async def test_collate_empty_input():
    assert [step async for step in collate([])] == []


@pytest.mark.asyncio
async def test_collate_all_empty_sources():
    assert [step async for step in collate([agen([]), []])] == []


@pytest.mark.asyncio
async def test_collate_advances_sources_concurrently():
    """Per-step reads overlap rather than running one after another."""
    loop = asyncio.get_running_loop()
    started = loop.time()
    steps = [step async for step in collate([agen([b"a"] * 3, 0.05), agen([b"b"] * 3, 0.05)])]
    elapsed = loop.time() - started

    assert [values(step) for step in steps] == [[b"a", b"b"]] * 3
    assert elapsed < 0.28


@pytest.mark.asyncio
async def test_collate_does_not_advance_finished_sources():
    calls = []

    class Counting:
        def __init__(self, n):
            self.n = n

        def __aiter__(self):
            return self

        async def __anext__(self):
            calls.append(self.n)
            if self.n == 0:
                raise StopAsyncIteration
            self.n -= 1
            return b"x"

    steps = [step async for step in collate([Counting(1), agen([b"y"] * 4)])]

    assert len(steps) == 4
    # One value, one end-of-stream, then never touched again
    assert calls == [1, 0]


@pytest.mark.asyncio
async def test_collate_error_propagates_without_partial_step():
    cancelled = asyncio.Event()

    async def failing():
        yield b"ok"
        raise OSError("disk on fire")

    async def slow():
        yield b"first"
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        yield b"never"

    seen = []
    with pytest.raises(OSError, match="disk on fire"):
        async for step in collate([failing(), slow()]):
            seen.append(values(step))

    assert seen == [[b"ok", b"first"]]
    assert cancelled.is_set()


def test_collate_rejects_non_iterables():
    with pytest.raises(TypeError, match=r"input\[1\] \(int\)"):
        list(iter_collate([[b"a"], 42]))


def test_iter_collate_alignment():
    steps = list(iter_collate([[b"a", b"b"], iter([b"1"]), []]))
    assert [values(step) for step in steps] == [[b"a", b"1", None], [b"b", None, None]]
    assert steps[1][1] is ABSENT

# --- GroupedReader ---

def test_grouped_reader_iter_window(image_file: Path, label_file: Path):
    with GroupedReader.from_paths([image_file, label_file], names=["images", "labels"]) as grouped:
        assert len(grouped) == 4
        steps = list(grouped.iter_window(1, 2))

    assert [values(step) for step in steps] == [
        [bytes(range(6, 12)), bytes([1])],
        [bytes(range(12, 18)), bytes([2])],
    ]
    assert grouped.closed


@pytest.mark.asyncio
async def test_grouped_reader_open_window(image_file: Path, label_file: Path):
    with GroupedReader.from_paths([image_file, label_file], piece_size=5) as grouped:
        steps = [step async for step in grouped.open_window()]
        decoded = grouped.decode_step(steps[3])

    assert len(steps) == 4
    assert [step[1].value for step in steps] == [bytes([7]), bytes([1]), bytes([2]), bytes([9])]
    np.testing.assert_array_equal(decoded[0], np.arange(18, 24).reshape(2, 3))
    assert int(decoded[1]) == 9


def test_grouped_reader_random_access(image_file: Path, label_file: Path):
    with GroupedReader.from_paths([image_file, label_file], names=["images", "labels"]) as grouped:
        item = grouped[2]
        assert list(item.keys()) == ["images", "labels"]
        np.testing.assert_array_equal(item["images"], np.arange(12, 18).reshape(2, 3))
        assert int(item["labels"]) == 2

        assert int(grouped[-1]["labels"]) == 9
        assert [int(i["labels"]) for i in grouped[1:3]] == [1, 2]
        assert [int(i["labels"]) for i in grouped] == [7, 1, 2, 9]

        with pytest.raises(IndexError):
            _ = grouped[4]


def test_grouped_reader_unequal_lengths(idx_file, label_file: Path, caplog):
    longer = idx_file(DataType.UBYTE, [6], bytes([0, 1, 2, 3, 4, 5]))
    with GroupedReader.from_paths([label_file, longer], names=["short", "long"]) as grouped:
        assert "different numbers of records" in caplog.text
        assert len(grouped) == 6
        assert grouped[5]["short"] is None
        # Windows must fit every file
        with pytest.raises(RangeError):
            grouped.iter_window(0, 6)


def test_grouped_reader_range_error_leaves_readers_untouched(image_file: Path, label_file: Path):
    with GroupedReader.from_paths([image_file, label_file]) as grouped:
        steps = grouped.iter_window(0, 1)
        with pytest.raises(RangeError):
            grouped.iter_window(4)
        assert all(reader.active_stream is not None for reader in grouped.readers)
        assert len(list(steps)) == 1


def test_grouped_reader_validation(label_file: Path):
    with pytest.raises(ValueError, match="cannot be empty"):
        GroupedReader([])
    with pytest.raises(TypeError, match=r"readers\[0\]"):
        GroupedReader([str(label_file)])
    with idx_open(str(label_file)) as f:
        with pytest.raises(ValueError, match="Got 2 names for 1 readers"):
            GroupedReader([f], names=["a", "b"])


def test_grouped_reader_default_names(image_file: Path, label_file: Path):
    with GroupedReader.from_paths([image_file, label_file]) as grouped:
        assert grouped.names == ["images-idx3-ubyte", "labels-idx1-ubyte"]

# --- Cancellation ---

def test_closed_window_drops_partial_record(image_file: Path, caplog):
    """Closing mid-record ends the records without a ShortRecord, even when strict."""
    with idx_open(str(image_file), piece_size=4) as f:
        records = f.iter_records(strict=True)
        assert next(records) == bytes(range(6))
        stream = f.active_stream
        stream.close()

        assert stream.cancelled
        assert list(records) == []
    assert "mid-record" not in caplog.text


@pytest.mark.asyncio
async def test_replaced_window_drops_partial_record(image_file: Path):
    with idx_open(str(image_file), piece_size=4) as f:
        records = f.records()
        assert await records.__anext__() == bytes(range(6))
        f.open_window(3)

        assert [record async for record in records] == []


@pytest.mark.asyncio
async def test_cancelled_slot_reports_absent(image_file: Path, label_file: Path):
    with GroupedReader.from_paths([image_file, label_file], piece_size=4) as grouped:
        steps = grouped.open_window()
        first = await steps.__anext__()
        assert values(first) == [bytes(range(6)), bytes([7])]

        grouped.readers[0].active_stream.close()
        rest = [step async for step in steps]

    assert len(rest) == 3
    assert all(images is ABSENT for images, _ in rest)
    assert [labels.value for _, labels in rest] == [bytes([1]), bytes([2]), bytes([9])]


def test_rechunk_flushes_sources_without_cancelled_flag():
    class Source(list):
        cancelled = False

    tail = list(iter_rechunk(Source([b"abcde"]), 4))[-1]
    assert is_short(tail) and tail == b"e"
