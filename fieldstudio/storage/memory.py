"""In-memory storage backend. Nothing survives the process."""

from typing import Optional

from fieldstudio.storage.base import Storage


class MemoryStorage(Storage):
    """Dict-backed storage, used by tests and the "memory" backend."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Stored keys, in insertion order."""
        return list(self._data)
