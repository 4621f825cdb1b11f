# tests/conftest.py
"""
Pytest configuration and shared fixtures for the test suite.
"""
from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np
import pytest

from idxstream import DataType


def make_idx_bytes(
    data_type: DataType,
    dims: Sequence[int],
    body: Optional[bytes] = None,
) -> bytes:
    """
    Builds the bytes of an IDX file.

    When `body` is omitted it is filled with a repeating 0..250 byte ramp of
    exactly the size the header declares.
    """
    header = bytes([0, 0, int(data_type), len(dims)]) + np.array(dims, dtype=">u4").tobytes()
    if body is None:
        body_size = data_type.width * int(np.prod(dims, dtype=np.int64))
        body = (np.arange(body_size) % 251).astype(np.uint8).tobytes()
    return header + body


@pytest.fixture
def idx_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture writing an IDX file under `tmp_path` and returning its path."""
    counter = iter(range(1_000_000))

    def _make(
        data_type: DataType,
        dims: Sequence[int],
        body: Optional[bytes] = None,
        *,
        name: Optional[str] = None,
        extra: bytes = b"",
    ) -> Path:
        path = tmp_path / (name or f"file{next(counter)}.idx")
        path.write_bytes(make_idx_bytes(data_type, dims, body) + extra)
        return path

    return _make


@pytest.fixture
def label_file(idx_file) -> Path:
    """A one-dimensional unsigned byte file holding the labels 7, 1, 2, 9."""
    return idx_file(DataType.UBYTE, [4], bytes([7, 1, 2, 9]), name="labels-idx1-ubyte")


@pytest.fixture
def image_file(idx_file) -> Path:
    """Four 2 x 3 unsigned byte images; image `i` holds bytes 6*i .. 6*i+5."""
    return idx_file(DataType.UBYTE, [4, 2, 3], bytes(range(24)), name="images-idx3-ubyte")


@pytest.fixture
def mnist_root(tmp_path: Path) -> Path:
    """A folder laid out like the MNIST distribution, with tiny files."""
    root = tmp_path / "MNIST"
    root.mkdir()
    layout = {
        "train-images-idx3-ubyte": make_idx_bytes(DataType.UBYTE, [5, 2, 2]),
        "train-labels-idx1-ubyte": make_idx_bytes(DataType.UBYTE, [5], bytes([5, 0, 4, 1, 9])),
        "t10k-images-idx3-ubyte": make_idx_bytes(DataType.UBYTE, [3, 2, 2]),
        "t10k-labels-idx1-ubyte": make_idx_bytes(DataType.UBYTE, [3], bytes([7, 2, 1])),
    }
    for file_name, content in layout.items():
        (root / file_name).write_bytes(content)
    return root
