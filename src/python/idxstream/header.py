# idxstream/header.py
"""
Decoding of the IDX header: magic, type code, and dimension table.

    offset 0..1   reserved, not validated
    offset 2      data type code (see `DataType`)
    offset 3      number of dimensions, uint8 > 0
    offset 4..    one big-endian uint32 per dimension, record count first
    then          the body, `dims[0]` records of `element_size` bytes
"""
import os
from typing import BinaryIO, Optional

import numpy as np

from .dataclasses import Geometry, MAGIC_SIZE, DIM_SIZE
from .exceptions import MalformedHeaderError, UnknownTypeCodeError
from .lowlevel import FileSource
from .logging_config import get_logger
from .types import DataType

logger = get_logger(__name__)

_DIM_DTYPE = np.dtype(">u4")


def decode_header(
    source: BinaryIO,
    total_size: int,
    *,
    path: Optional[str] = None
) -> Geometry:
    """
    Decodes the header at the current position of `source`.

    This is a single forward pass over `4 + 4 * axis_count` bytes; the body
    is never read.

    Args:
        source: A binary file-like object positioned at the start of the header.
        total_size: The size of the whole file in bytes.
        path: (Optional) The file name, used in error messages.

    Returns:
        The decoded Geometry.

    Raises:
        MalformedHeaderError: If the header is short, declares no dimensions,
            or disagrees with `total_size`.
        UnknownTypeCodeError: If the type code is not a known DataType.
    """
    magic = source.read(MAGIC_SIZE)
    if len(magic) != MAGIC_SIZE:
        raise MalformedHeaderError(
            "Error reading magic", path=path, expected=MAGIC_SIZE, actual=len(magic)
        )

    type_code, axis_count = magic[2], magic[3]
    if axis_count == 0:
        raise MalformedHeaderError(
            "Expected positive number of dimensions, got 0", path=path, actual=0
        )
    try:
        data_type = DataType(type_code)
    except ValueError:
        raise UnknownTypeCodeError(type_code, path=path) from None

    table_size = DIM_SIZE * axis_count
    table = source.read(table_size)
    if len(table) != table_size:
        raise MalformedHeaderError(
            f"Error reading {axis_count} dimensions",
            path=path, expected=table_size, actual=len(table)
        )
    dims = tuple(int(d) for d in np.frombuffer(table, _DIM_DTYPE))

    geometry = Geometry(data_type=data_type, dims=dims)
    if geometry.total_size != total_size:
        raise MalformedHeaderError(
            f"Expected {total_size} bytes, header declares {geometry.total_size}",
            path=path, expected=total_size, actual=geometry.total_size
        )

    if data_type.is_narrowed:
        logger.warning(
            "%s declares 8-byte data; records decode as 4-byte floats",
            path or "<stream>"
        )
    logger.debug(
        "Decoded %s: %s %s, %d-byte records",
        path or "<stream>", data_type.name, geometry.dim_string, geometry.element_size
    )
    return geometry


def read_geometry(path: str) -> Geometry:
    """
    Opens an IDX file and decodes its header.

    Raises:
        SourceIOError: If the file cannot be opened or read.
        MalformedHeaderError: See `decode_header`.
    """
    source = FileSource(path)
    try:
        return decode_header(source, source.size, path=source.path)
    finally:
        source.close()
