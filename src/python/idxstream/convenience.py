# idxstream/convenience.py
"""
High-level convenience functions for common single-file reads.
"""
from typing import List, Optional
import numpy as np

from .dataclasses import Geometry
from .file import open as idx_open
from .header import read_geometry
from ._internal import numpy_utils

def load_geometry(filepath: str) -> Geometry:
    """
    Decodes the header of an IDX file without reading its body.

    Args:
        filepath: The path to the IDX file.

    Returns:
        The file's Geometry.
    """
    return read_geometry(filepath)


def read_records(
    filepath: str,
    begin: int = 0,
    count: Optional[int] = None,
    *,
    strict: bool = True
) -> List[bytes]:
    """
    Reads a window of records as raw bytes, one entry per record.

    Args:
        filepath: The path to the IDX file.
        begin: Index of the first record.
        count: Number of records; None reads to the end of the file.
        strict: If True (default), a file that ends mid-record raises
                TruncatedRecordError instead of returning a short last entry.
    """
    with idx_open(filepath) as f:
        return list(f.iter_records(begin, count, strict=strict))


def load_window(
    filepath: str,
    begin: int = 0,
    count: Optional[int] = None
) -> np.ndarray:
    """
    Loads a window of records as one decoded array.

    Args:
        filepath: The path to the IDX file.
        begin: Index of the first record.
        count: Number of records; None reads to the end of the file.

    Returns:
        An array of shape `(count,) + record shape`, e.g. (10, 28, 28)
        for ten MNIST images.

    Raises:
        RangeError: If the window is out of bounds.
    """
    with idx_open(filepath) as f:
        records = list(f.iter_records(begin, count, strict=True))
        return numpy_utils.decode_records(records, f.geometry)
