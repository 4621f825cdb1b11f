# idxstream/stream/collate.py
"""
Lock-step fan-in of several independently paced streams.
"""
import asyncio
from typing import Any, AsyncIterator, Iterator, List, Sequence, Tuple

from ..dataclasses import ABSENT, Slot
from .._internal.iterators import ensure_async_iterator, ensure_iterator

Step = Tuple[Slot, ...]


async def _advance(iterator: AsyncIterator[Any]) -> Slot:
    try:
        return Slot(await iterator.__anext__())
    except StopAsyncIteration:
        return ABSENT


async def collate(sources: Sequence[Any]) -> AsyncIterator[Step]:
    """
    Iterates several streams together, one item from each per step.

    Each step awaits the next item of every unfinished source concurrently
    and yields a tuple of `Slot`s in the same order as `sources`. Once a
    source finishes it is never advanced again and its slot is `ABSENT` in
    every later step, so the tuple width never changes. Iteration ends when
    every source has finished.

    If a source raises, the pending reads of the other sources are
    cancelled and the error propagates; no tuple is yielded for that step.

    Args:
        sources: Async or sync iterables, e.g. `rechunk` streams.

    Yields:
        Tuples of `len(sources)` Slots.
    """
    iterators = [ensure_async_iterator(s, k) for k, s in enumerate(sources)]
    active = [True] * len(iterators)

    while any(active):
        pending = [k for k, alive in enumerate(active) if alive]
        tasks = [asyncio.ensure_future(_advance(iterators[k])) for k in pending]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        step: List[Slot] = [ABSENT] * len(iterators)
        for k, slot in zip(pending, results):
            if slot.exhausted:
                active[k] = False
            step[k] = slot

        if any(slot.present for slot in step):
            yield tuple(step)


def iter_collate(sources: Sequence[Any]) -> Iterator[Step]:
    """Synchronous counterpart of `collate`; sources are advanced in order."""
    iterators = [ensure_iterator(s, k) for k, s in enumerate(sources)]
    active = [True] * len(iterators)

    while any(active):
        step: List[Slot] = [ABSENT] * len(iterators)
        for k, iterator in enumerate(iterators):
            if not active[k]:
                continue
            try:
                step[k] = Slot(next(iterator))
            except StopIteration:
                active[k] = False

        if any(slot.present for slot in step):
            yield tuple(step)
