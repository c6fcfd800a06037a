"""Key-value storage contract.

The palette persists exactly one value (the command history JSON) under
a fixed key. Anything that can get and set a string by key will do:
memory for tests, a file per key on desktop, or a SQLite table when the
host already keeps a database.
"""

from abc import ABC, abstractmethod
from typing import Optional


class Storage(ABC):
    """Abstract string-to-string store.

    Subclasses must implement get, set and delete. Backends wrap their
    own I/O failures in PersistenceReadError / PersistenceWriteError so
    callers only ever need to handle StorageError.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent.

        Raises:
            PersistenceReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value.

        Raises:
            PersistenceWriteError: If the backend cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are not an error.

        Raises:
            PersistenceWriteError: If the backend cannot be written
        """
        pass

    def close(self) -> None:
        """Release any held resources. Default is a no-op."""
        pass
