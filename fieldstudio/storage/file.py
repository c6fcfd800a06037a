"""File-per-key storage backend.

Each key maps to one UTF-8 file inside a directory. Keys are turned into
safe filenames (``field-studio:command-history`` becomes
``field-studio_command-history.json``). Writes go to a temp file first and
are moved into place, so a crash mid-write leaves the old value intact.
"""

import os
import re
from pathlib import Path
from typing import Optional

from fieldstudio.core.exceptions import PersistenceReadError, PersistenceWriteError
from fieldstudio.core.logging import get_logger
from fieldstudio.storage.base import Storage

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def key_to_filename(key: str) -> str:
    """Map a storage key to a filesystem-safe filename."""
    safe = _UNSAFE_CHARS.sub("_", key).strip("._")
    if not safe:
        safe = "_"
    return f"{safe}.json"


class FileStorage(Storage):
    """Stores each key as a file under ``directory``.

    Attributes:
        directory: Folder holding one file per key
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / key_to_filename(key)

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceReadError(f"Cannot read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceWriteError(f"Cannot write {path}: {e}") from e
        logger.debug(
            "Storage key written",
            extra={"context": {"key": key, "bytes": len(value)}},
        )

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceWriteError(f"Cannot delete {path}: {e}") from e
