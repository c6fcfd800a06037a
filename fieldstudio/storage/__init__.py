"""Storage package - key-value persistence for palette state.

Modules:
    - base: Storage interface (get/set/delete by key)
    - memory: Dict-backed storage
    - file: One file per key
    - sqlite: Single-table SQLite store
"""

from typing import Optional

from fieldstudio.core.config import Config, get_config
from fieldstudio.core.exceptions import ConfigurationError
from fieldstudio.core.logging import get_logger
from fieldstudio.storage.base import Storage
from fieldstudio.storage.file import FileStorage
from fieldstudio.storage.memory import MemoryStorage
from fieldstudio.storage.sqlite import SqliteStorage

logger = get_logger(__name__)

SQLITE_FILENAME = "palette.db"


def open_storage(config: Optional[Config] = None) -> Storage:
    """Build the storage backend named by configuration.

    Args:
        config: Configuration to use. Defaults to the cached config.

    Returns:
        A ready-to-use Storage

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    if config is None:
        config = get_config()

    backend = config.storage_backend
    if backend == "file":
        storage: Storage = FileStorage(config.data_path)
    elif backend == "sqlite":
        storage = SqliteStorage(config.data_path / SQLITE_FILENAME)
    elif backend == "memory":
        storage = MemoryStorage()
    else:
        raise ConfigurationError(f"Unknown storage backend: {backend!r}")

    logger.info(
        "Storage opened",
        extra={"context": {"backend": backend, "path": str(config.data_path)}},
    )
    return storage


__all__ = [
    "Storage",
    "MemoryStorage",
    "FileStorage",
    "SqliteStorage",
    "open_storage",
]
