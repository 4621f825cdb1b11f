# idxstream/__init__.py
"""
Streaming, record-aligned access to IDX (MNIST) dataset files.
"""
# `stream` must be imported before `file`, which depends on it.
from .stream import GroupedReader, Rechunker, ShortRecord, collate, iter_collate, rechunk, iter_rechunk
from .file import Reader, RangeStream, open
from .types import DataType
from .dataclasses import ABSENT, Geometry, Slot, Window
from .header import decode_header, read_geometry
from .datasets import Database, DatasetBinding
from .convenience import load_geometry, load_window, read_records
from .exceptions import (
    IdxError,
    IdxConfigError,
    MalformedHeaderError,
    UnknownTypeCodeError,
    RangeError,
    TruncatedRecordError,
    SourceIOError,
)

__version__ = "0.1.0"

# Define what gets imported with 'from idxstream import *'
__all__ = [
    'open',
    'Reader',
    'RangeStream',
    'GroupedReader',
    'Rechunker',
    'ShortRecord',
    'rechunk',
    'iter_rechunk',
    'collate',
    'iter_collate',
    'Database',
    'DatasetBinding',
    'DataType',
    'Geometry',
    'Window',
    'Slot',
    'ABSENT',
    'decode_header',
    'read_geometry',
    'load_geometry',
    'load_window',
    'read_records',
    'IdxError',
    'IdxConfigError',
    'MalformedHeaderError',
    'UnknownTypeCodeError',
    'RangeError',
    'TruncatedRecordError',
    'SourceIOError',
    '__version__',
]
