# idxstream/abc.py
"""Abstract Base Classes for the idxstream library."""

import abc

class IdxFileBase(abc.ABC):
    """Abstract base class for IDX file handles."""

    @abc.abstractmethod
    def close(self) -> None:
        """
        Releases every OS resource held by the handle.
        Subsequent read operations on the object will raise an error.
        """
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def closed(self) -> bool:
        """Returns True if the handle is closed."""
        raise NotImplementedError

    def __enter__(self) -> "IdxFileBase":
        if self.closed:
            raise ValueError("Cannot enter context with a closed file handle.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
