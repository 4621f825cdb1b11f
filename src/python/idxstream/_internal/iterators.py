# idxstream/_internal/iterators.py

"""
Internal helpers that accept either synchronous or asynchronous iterables.
"""

from typing import Any, AsyncIterator, Iterator, Optional


async def _from_sync(iterator: Iterator[Any]) -> AsyncIterator[Any]:
    for item in iterator:
        yield item


def _describe(thing: Any, position: Optional[int]) -> str:
    where = "input" if position is None else f"input[{position}]"
    return f"{where} ({type(thing).__name__})"


def ensure_async_iterator(thing: Any, position: Optional[int] = None) -> AsyncIterator[Any]:
    """
    Returns an async iterator over `thing`.

    Async iterators are returned as-is, async iterables are asked for their
    iterator, and synchronous iterables are wrapped.

    Raises:
        TypeError: If `thing` is not iterable in either sense.
    """
    if hasattr(thing, "__anext__"):
        return thing
    if hasattr(thing, "__aiter__"):
        return thing.__aiter__()
    if hasattr(thing, "__iter__"):
        return _from_sync(iter(thing))
    raise TypeError(f"Cannot locate an iterator for {_describe(thing, position)}")


def ensure_iterator(thing: Any, position: Optional[int] = None) -> Iterator[Any]:
    """Synchronous counterpart of `ensure_async_iterator`."""
    if hasattr(thing, "__next__"):
        return thing
    if hasattr(thing, "__iter__"):
        return iter(thing)
    raise TypeError(f"Cannot locate an iterator for {_describe(thing, position)}")
