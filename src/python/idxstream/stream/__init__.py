# idxstream/stream/__init__.py
"""Record-level streaming: rechunking, collation, and grouped readers."""
from .rechunk import Rechunker, ShortRecord, is_short, rechunk, iter_rechunk
from .collate import Step, collate, iter_collate
from .readers import GroupedReader
