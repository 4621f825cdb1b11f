# idxstream/dataclasses.py
"""
Dataclasses for structured data within the idxstream library.
"""
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .types import DataType
from .exceptions import RangeError

MAGIC_SIZE = 4
DIM_SIZE = 4

@dataclass(frozen=True, slots=True)
class Geometry:
    """Shape and type information decoded from an IDX header."""
    data_type: DataType
    dims: Tuple[int, ...]

    @property
    def axis_count(self) -> int:
        return len(self.dims)

    @property
    def length(self) -> int:
        """The number of records (the size of the first dimension)."""
        return self.dims[0]

    @property
    def shape(self) -> Tuple[int, ...]:
        """The shape of one record; empty for a one-dimensional file."""
        return self.dims[1:]

    @property
    def header_size(self) -> int:
        return MAGIC_SIZE + DIM_SIZE * self.axis_count

    @property
    def element_size(self) -> int:
        """
        The size in bytes of one record.

        For a file of one dimension this is the width of a single datum.
        Otherwise it is the product of all dimensions but the first, times
        the datum width, so 60000 x 28 x 28 unsigned bytes gives 784.
        """
        return self.data_type.width * math.prod(self.shape)

    @property
    def body_size(self) -> int:
        return self.length * self.element_size

    @property
    def total_size(self) -> int:
        return self.header_size + self.body_size

    @property
    def dim_string(self) -> str:
        """Dimensions formatted for humans, e.g. '60000 x 28 x 28'."""
        return " x ".join(str(d) for d in self.dims)

@dataclass(frozen=True, slots=True)
class Window:
    """A validated half-open range of records `[begin, begin + count)`."""
    begin: int
    count: int

    @property
    def end(self) -> int:
        return self.begin + self.count

    @classmethod
    def resolve(cls, geometry: Geometry, begin: int = 0, count: Optional[int] = None) -> "Window":
        """
        Validates a window request against a geometry.

        Args:
            geometry: The geometry of the file being read.
            begin: Index of the first record, in `[0, length)`.
            count: Number of records, in `[1, length - begin]`. None means
                   every record from `begin` to the end of the file.

        Raises:
            RangeError: If `begin` or `count` is out of bounds.
        """
        length = geometry.length
        if not (0 <= begin < length):
            raise RangeError("begin", begin, 0, length)
        available = length - begin
        if count is None:
            count = available
        if not (0 < count <= available):
            raise RangeError("count", count, 1, available, closed=True)
        return cls(begin=begin, count=count)

    def byte_range(self, geometry: Geometry) -> Tuple[int, int]:
        """Returns the `(start, stop)` file offsets covered by this window."""
        start = geometry.header_size + self.begin * geometry.element_size
        stop = start + self.count * geometry.element_size
        return start, stop

@dataclass(frozen=True, slots=True)
class Slot:
    """One source's result within a collation step."""
    value: Optional[bytes]
    exhausted: bool = False

    @property
    def present(self) -> bool:
        return not self.exhausted

ABSENT = Slot(value=None, exhausted=True)
