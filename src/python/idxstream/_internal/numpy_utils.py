# idxstream/_internal/numpy_utils.py

"""
Internal utilities for viewing raw IDX records as NumPy arrays.

Arrays returned here are read-only views over the bytes they were decoded
from; only `decode_records` given a list of chunks joins them first.
"""

from typing import Sequence, Tuple

import numpy as np

from ..dataclasses import Geometry
from ..types import DataType

# --- Mappings ---

_DATA_TYPE_TO_NP_DTYPE: dict[DataType, np.dtype] = {
    data_type: np.dtype(data_type.dtype_str) for data_type in DataType
}

# --- Functions ---

def record_dtype(data_type: DataType) -> np.dtype:
    """Returns the big-endian NumPy dtype used to view one datum."""
    return _DATA_TYPE_TO_NP_DTYPE[data_type]

def record_shape(geometry: Geometry) -> Tuple[int, ...]:
    """
    Returns the array shape of one decoded record.

    This is `geometry.shape`, except for narrowed types where each stored
    datum yields several values; those get an extra trailing axis.
    """
    dtype = record_dtype(geometry.data_type)
    per_datum = geometry.data_type.width // dtype.itemsize
    if per_datum == 1:
        return geometry.shape
    return geometry.shape + (per_datum,)

def decode_record(chunk: bytes, geometry: Geometry) -> np.ndarray:
    """
    Views one record as an array of shape `record_shape(geometry)`.

    A chunk of the wrong length (such as a ShortRecord) cannot be given the
    record shape; its whole datums are returned as a flat array instead.
    """
    dtype = record_dtype(geometry.data_type)
    if len(chunk) != geometry.element_size:
        usable = len(chunk) - len(chunk) % dtype.itemsize
        return np.frombuffer(chunk[:usable], dtype)
    return np.frombuffer(chunk, dtype).reshape(record_shape(geometry))

def decode_records(chunks: Sequence[bytes] | bytes, geometry: Geometry) -> np.ndarray:
    """
    Decodes several whole records into one array of shape
    `(n,) + record_shape(geometry)`.

    Args:
        chunks: Either a sequence of records or one buffer holding them
                back to back.
        geometry: The geometry of the file they came from.

    Raises:
        ValueError: If the data is not a whole number of records.
    """
    buffer = chunks if isinstance(chunks, (bytes, bytearray, memoryview)) else b"".join(chunks)
    size = geometry.element_size
    if len(buffer) % size != 0:
        raise ValueError(
            f"Buffer of {len(buffer)} bytes is not a whole number of "
            f"{size}-byte records."
        )
    count = len(buffer) // size
    values = np.frombuffer(buffer, record_dtype(geometry.data_type))
    shape = (count,) + record_shape(geometry)
    return values.reshape(shape)
