# idxstream/datasets.py
"""
Named pairs of MNIST image and label files.

    with Database() as db:
        async for images, labels in db.open_window(DatasetBinding.TESTING, 0, 100):
            ...
"""
import os
from enum import Enum
from typing import AsyncIterator, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from . import config
from .exceptions import IdxConfigError
from .file import Reader
from .logging_config import get_logger
from .stream.collate import Step
from .stream.readers import GroupedReader

logger = get_logger(__name__)

# Slot order of every binding.
SLOT_NAMES: Tuple[str, ...] = ("images", "labels")

class DatasetBinding(Enum):
    """The MNIST file pairs, as (images file, labels file)."""
    TRAINING = ("train-images-idx3-ubyte", "train-labels-idx1-ubyte")
    TESTING = ("t10k-images-idx3-ubyte", "t10k-labels-idx1-ubyte")

    @property
    def files(self) -> Tuple[str, ...]:
        return self.value

    @property
    def label(self) -> str:
        """The lowercase name used by callers, e.g. 'training'."""
        return self.name.lower()

    @classmethod
    def from_name(cls, name: Union[str, "DatasetBinding"]) -> "DatasetBinding":
        """
        Resolves 'training' or 'testing' (any case) to a binding.

        Raises:
            IdxConfigError: If the name matches no binding.
        """
        if isinstance(name, cls):
            return name
        for binding in cls:
            if binding.label == str(name).lower():
                return binding
        labels = ", ".join(binding.label for binding in cls)
        raise IdxConfigError(f"Unknown database name '{name}', try one of [{labels}]")


class Database:
    """
    Opens every binding's files once and serves windows over them.

    Args:
        root: Folder holding the MNIST files. Defaults to `config.DATA_ROOT`.
        bindings: The bindings to open; all of them by default.
        piece_size: (Optional) Bytes requested per OS read while streaming.

    Raises:
        IdxConfigError: If a bound file does not exist.
    """
    def __init__(
        self,
        root: Optional[Union[str, "os.PathLike[str]"]] = None,
        bindings: Iterable[DatasetBinding] = tuple(DatasetBinding),
        *,
        piece_size: Optional[int] = None
    ):
        self.root = os.fspath(root if root is not None else config.DATA_ROOT)
        self._groups: Dict[DatasetBinding, GroupedReader] = {}
        try:
            for binding in bindings:
                self._groups[binding] = self._open_binding(binding, piece_size)
        except BaseException:
            self.close()
            raise

    def _open_binding(self, binding: DatasetBinding, piece_size: Optional[int]) -> GroupedReader:
        paths = [os.path.join(self.root, file_name) for file_name in binding.files]
        missing = [path for path in paths if not os.path.isfile(path)]
        if missing:
            raise IdxConfigError(
                f"Missing files for '{binding.label}': {', '.join(missing)}"
            )
        group = GroupedReader.from_paths(paths, names=SLOT_NAMES, piece_size=piece_size)
        logger.info(
            "Opened '%s': %s",
            binding.label,
            ", ".join(f"{n} {r.geometry.dim_string}" for n, r in zip(group.names, group.readers)),
        )
        return group

    @property
    def bindings(self) -> List[DatasetBinding]:
        return list(self._groups)

    def group(self, binding: Union[str, DatasetBinding] = DatasetBinding.TRAINING) -> GroupedReader:
        """Returns the GroupedReader of a binding."""
        binding = DatasetBinding.from_name(binding)
        try:
            return self._groups[binding]
        except KeyError:
            raise IdxConfigError(f"Database was not opened with '{binding.label}'") from None

    def indices(self, binding: Union[str, DatasetBinding] = DatasetBinding.TRAINING) -> List[Reader]:
        """Returns the binding's readers in slot order."""
        return list(self.group(binding).readers)

    def open_window(
        self,
        binding: Union[str, DatasetBinding] = DatasetBinding.TRAINING,
        begin: int = 0,
        count: Optional[int] = None,
        *,
        strict: bool = False
    ) -> AsyncIterator[Step]:
        """
        Returns an async iterator of (images, labels) slot tuples.

        Raises:
            IdxConfigError: If the binding is unknown or not opened.
            RangeError: If the window is out of bounds.
        """
        return self.group(binding).open_window(begin, count, strict=strict)

    def iter_window(
        self,
        binding: Union[str, DatasetBinding] = DatasetBinding.TRAINING,
        begin: int = 0,
        count: Optional[int] = None,
        *,
        strict: bool = False
    ) -> Iterator[Step]:
        """Synchronous counterpart of `open_window`."""
        return self.group(binding).iter_window(begin, count, strict=strict)

    def close(self) -> None:
        for group in self._groups.values():
            group.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
