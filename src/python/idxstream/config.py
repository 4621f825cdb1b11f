# idxstream/config.py
"""Configuration settings read from the environment."""

import os

from .exceptions import IdxConfigError

# Folder holding the MNIST files named by `idxstream.datasets.DatasetBinding`.
DATA_ROOT = os.environ.get("IDXSTREAM_DATA_ROOT", "MNIST")

LOG_LEVEL = os.environ.get("IDXSTREAM_LOG_LEVEL", "INFO").upper()

DEFAULT_READ_PIECE_SIZE = 64 * 1024


def _read_piece_size() -> int:
    raw = os.environ.get("IDXSTREAM_READ_PIECE_SIZE")
    if raw is None:
        return DEFAULT_READ_PIECE_SIZE
    try:
        value = int(raw)
    except ValueError:
        raise IdxConfigError(
            f"IDXSTREAM_READ_PIECE_SIZE must be an integer, got '{raw}'"
        ) from None
    if value <= 0:
        raise IdxConfigError(
            f"IDXSTREAM_READ_PIECE_SIZE must be positive, got {value}"
        )
    return value


# Bytes requested from the OS per read while streaming a window.
READ_PIECE_SIZE = _read_piece_size()
