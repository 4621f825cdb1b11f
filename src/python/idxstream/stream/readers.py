# idxstream/stream/readers.py
"""
High-level reader for several IDX files read in lock step.
"""
import os
from typing import (
    AsyncIterator, Dict, Iterator, List, Optional, Sequence, Tuple, Union, overload
)
import numpy as np

from ..file import Reader
from ..dataclasses import Slot, Window
from ..logging_config import get_logger
from .._internal import numpy_utils
from .collate import Step, collate, iter_collate
from .rechunk import rechunk, iter_rechunk

logger = get_logger(__name__)

class GroupedReader:
    """
    Reads record-aligned IDX files as a single stream of record tuples.

    The files describe the same items, one record per item in each file:
    typically images and their labels. Iterating a window yields one tuple
    per item whose slot `i` holds the record from the `i`-th file.

    Usage:
        with GroupedReader.from_paths(
            ["train-images-idx3-ubyte", "train-labels-idx1-ubyte"],
            names=["images", "labels"],
        ) as grouped:
            async for images, labels in grouped.open_window(100, 10):
                process(images.value, labels.value)

            # Decode a single item by index
            item = grouped[5]   # {"images": array(28, 28), "labels": array()}
    """
    def __init__(self, readers: Sequence[Reader], names: Optional[Sequence[str]] = None):
        """
        Initializes the grouped reader.

        Args:
            readers: Opened `idxstream.Reader` instances, in slot order.
            names: (Optional) One name per reader, used as keys by
                   `__getitem__`. Defaults to the file base names.
        """
        if not readers:
            raise ValueError("`readers` sequence cannot be empty.")
        for k, reader in enumerate(readers):
            if not isinstance(reader, Reader):
                raise TypeError(f"readers[{k}] must be an idxstream.Reader object.")
        if names is None:
            names = [os.path.basename(reader.path) for reader in readers]
        if len(names) != len(readers):
            raise ValueError(
                f"Got {len(names)} names for {len(readers)} readers."
            )

        self.readers = list(readers)
        self.names = list(names)
        self._check_alignment()

    @classmethod
    def from_paths(
        cls,
        paths: Sequence[Union[str, "os.PathLike[str]"]],
        names: Optional[Sequence[str]] = None,
        *,
        piece_size: Optional[int] = None
    ) -> "GroupedReader":
        """Opens one Reader per path; they are closed with the group."""
        readers: List[Reader] = []
        try:
            for path in paths:
                readers.append(Reader(path, piece_size=piece_size))
            return cls(readers, names)
        except BaseException:
            for reader in readers:
                reader.close()
            raise

    def _check_alignment(self) -> None:
        """Logs when the files disagree on the number of records."""
        lengths = [len(reader) for reader in self.readers]
        if len(set(lengths)) > 1:
            counts = ", ".join(f"'{n}': {l}" for n, l in zip(self.names, lengths))
            logger.warning(
                "Grouped files hold different numbers of records (%s); "
                "shorter files will report absent slots.", counts
            )

    @property
    def num_records(self) -> int:
        """The number of record tuples, i.e. the length of the longest file."""
        return max(len(reader) for reader in self.readers)

    def __len__(self) -> int:
        return self.num_records

    def _resolve_all(self, begin: int, count: Optional[int]) -> None:
        # Validate every window before any reader replaces its active one.
        for reader in self.readers:
            Window.resolve(reader.geometry, begin, count)

    def open_window(
        self,
        begin: int = 0,
        count: Optional[int] = None,
        *,
        strict: bool = False
    ) -> AsyncIterator[Step]:
        """
        Returns an async iterator of record tuples for items `[begin, begin + count)`.

        The window is validated against every file; the first violation
        raises RangeError and leaves all readers untouched.
        """
        self._resolve_all(begin, count)
        streams = [
            rechunk(reader.open_window(begin, count), reader.geometry.element_size, strict=strict)
            for reader in self.readers
        ]
        return collate(streams)

    def iter_window(
        self,
        begin: int = 0,
        count: Optional[int] = None,
        *,
        strict: bool = False
    ) -> Iterator[Step]:
        """Synchronous counterpart of `open_window`."""
        self._resolve_all(begin, count)
        streams = [
            iter_rechunk(reader.open_window(begin, count), reader.geometry.element_size, strict=strict)
            for reader in self.readers
        ]
        return iter_collate(streams)

    def decode_step(self, step: Tuple[Slot, ...]) -> Tuple[Optional[np.ndarray], ...]:
        """Decodes each present slot of a step with its file's geometry."""
        return tuple(
            None if slot.exhausted
            else numpy_utils.decode_record(slot.value, reader.geometry)
            for slot, reader in zip(step, self.readers)
        )

    @overload
    def __getitem__(self, key: int) -> Dict[str, Optional[np.ndarray]]: ...

    @overload
    def __getitem__(self, key: slice) -> Iterator[Dict[str, Optional[np.ndarray]]]: ...

    def __getitem__(
        self, key: Union[int, slice]
    ) -> Union[Dict[str, Optional[np.ndarray]], Iterator[Dict[str, Optional[np.ndarray]]]]:
        """
        Decodes a single item or returns an iterator over a slice of items.

        Files too short to hold the item map to None.
        """
        if isinstance(key, int):
            if key < 0:
                key += self.num_records
            if not (0 <= key < self.num_records):
                raise IndexError("Item index out of range.")

            item: Dict[str, Optional[np.ndarray]] = {}
            for name, reader in zip(self.names, self.readers):
                item[name] = reader[key] if key < len(reader) else None
            return item

        elif isinstance(key, slice):
            start, stop, step = key.indices(self.num_records)
            return (self[i] for i in range(start, stop, step))

        else:
            raise TypeError(f"Index must be an integer or slice, not {type(key).__name__}")

    def __iter__(self) -> Iterator[Dict[str, Optional[np.ndarray]]]:
        """Returns a new, independent iterator over the decoded items."""
        for i in range(self.num_records):
            yield self[i]

    def close(self) -> None:
        """Closes every underlying reader."""
        for reader in self.readers:
            reader.close()

    @property
    def closed(self) -> bool:
        return all(reader.closed for reader in self.readers)

    def __enter__(self) -> "GroupedReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
