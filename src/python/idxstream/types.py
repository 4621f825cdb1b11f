# idxstream/types.py

"""
Core type-safe enumerations for the idxstream library.
"""
from enum import IntEnum

class DataType(IntEnum):
    """
    Enumeration of the IDX data type codes found at byte 2 of the magic.

    Each member knows the on-disk width of one datum and the big-endian
    NumPy dtype string used to view it.
    """
    UBYTE = 0x08
    BYTE = 0x09
    SHORT = 0x0B
    INT = 0x0C
    FLOAT = 0x0D
    # Stored as 8 bytes per datum but viewed as 4-byte floats.
    DOUBLE = 0x0E

    @property
    def width(self) -> int:
        """Bytes occupied by one datum in the file body."""
        return _WIDTHS[self]

    @property
    def dtype_str(self) -> str:
        """Big-endian NumPy dtype string used when decoding records."""
        return _DTYPE_STRS[self]

    @property
    def is_narrowed(self) -> bool:
        """True when the decoded dtype is smaller than the stored width."""
        return self is DataType.DOUBLE


_WIDTHS = {
    DataType.UBYTE: 1,
    DataType.BYTE: 1,
    DataType.SHORT: 2,
    DataType.INT: 4,
    DataType.FLOAT: 4,
    DataType.DOUBLE: 8,
}

_DTYPE_STRS = {
    DataType.UBYTE: "u1",
    DataType.BYTE: "i1",
    DataType.SHORT: ">i2",
    DataType.INT: ">i4",
    DataType.FLOAT: ">f4",
    DataType.DOUBLE: ">f4",
}
