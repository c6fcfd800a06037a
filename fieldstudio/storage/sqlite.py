"""SQLite key-value storage backend.

Single ``kv`` table, lazily connected. Use ":memory:" for an in-memory
database.

Usage:
    from fieldstudio.storage.sqlite import SqliteStorage

    storage = SqliteStorage(Path("~/.fieldstudio/palette.db").expanduser())
    storage.set("field-studio:command-history", "[]")
"""

import sqlite3
from pathlib import Path
from typing import Optional, Union

from fieldstudio.core.exceptions import PersistenceReadError, PersistenceWriteError
from fieldstudio.core.logging import get_logger
from fieldstudio.storage.base import Storage

logger = get_logger(__name__)

_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteStorage(Storage):
    """SQLite-backed storage.

    Attributes:
        db_path: Path to database file, or ":memory:"
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection, creating the schema on first use."""
        if self._conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            conn = sqlite3.connect(self.db_path)
            if self.db_path != ":memory:":
                conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(_SCHEMA_DDL)
            conn.commit()
            self._conn = conn
            logger.debug("Storage database opened", extra={"context": {"path": self.db_path}})
        return self._conn

    def get(self, key: str) -> Optional[str]:
        try:
            row = (
                self._get_connection()
                .execute("SELECT value FROM kv WHERE key = ?", (key,))
                .fetchone()
            )
        except (sqlite3.Error, OSError) as e:
            raise PersistenceReadError(f"Cannot read key {key!r}: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._get_connection()
            conn.execute(
                """
                INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceWriteError(f"Cannot write key {key!r}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            conn = self._get_connection()
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceWriteError(f"Cannot delete key {key!r}: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
