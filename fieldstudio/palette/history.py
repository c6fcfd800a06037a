"""Command history - persisted per-command usage stats.

Feeds the palette's "Recent" and "Frequent" groups and the search-mode
history boost. Stored as a JSON array under one storage key:

    [{"commandId": "save", "usedAt": 1767225600000, "useCount": 3}, ...]

The list is kept sorted by (useCount desc, usedAt desc) and capped; the
tail is dropped when the cap is exceeded. Storage problems never reach
callers: unreadable data loads as an empty history, failed writes are
logged and the in-memory history carries on.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fieldstudio.core.config import Config, get_config
from fieldstudio.core.exceptions import StorageError, ValidationError
from fieldstudio.core.logging import get_logger
from fieldstudio.palette.models import HistoryEntry
from fieldstudio.storage import open_storage
from fieldstudio.storage.base import Storage

logger = get_logger(__name__)

HISTORY_STORAGE_KEY = "field-studio:command-history"
DEFAULT_MAX_ENTRIES = 50
DEFAULT_RECENCY_WINDOW = timedelta(hours=1)
DEFAULT_FREQUENT_LIMIT = 5


def to_millis(moment: datetime) -> int:
    """Epoch milliseconds for a datetime."""
    return int(moment.timestamp() * 1000)


def utc_now() -> datetime:
    """Default clock. Aware UTC, so epoch millis never step back at DST changes."""
    return datetime.now(timezone.utc)


def _sort_key(entry: HistoryEntry) -> tuple[int, int]:
    return (-entry.use_count, -entry.last_used_at)


class CommandHistory:
    """Usage history for palette commands.

    One instance is shared by the whole app and handed to each palette
    session. Loads lazily from storage on first use; writes through on
    every record_usage.
    """

    def __init__(
        self,
        storage: Storage,
        key: str = HISTORY_STORAGE_KEY,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        recency_window: timedelta = DEFAULT_RECENCY_WINDOW,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        if max_entries < 1:
            raise ValidationError(f"max_entries must be at least 1, got {max_entries}")
        self._storage = storage
        self._key = key
        self._max_entries = max_entries
        self._recency_window = recency_window
        # Injectable clock for testing
        self._now_fn = now_fn or utc_now
        self._entries: list[HistoryEntry] = []
        self._loaded = False

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def recency_window(self) -> timedelta:
        return self._recency_window

    @property
    def loaded(self) -> bool:
        return self._loaded

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self, force: bool = False) -> None:
        """Read history from storage.

        Only the first call reads; later calls are no-ops unless
        ``force`` is set. Missing or malformed data gives an empty
        history. Individually invalid entries are dropped.
        """
        if self._loaded and not force:
            return
        self._loaded = True
        self._entries = []

        try:
            raw = self._storage.get(self._key)
        except (StorageError, OSError):
            logger.warning("Failed to read command history", exc_info=True)
            return

        if not raw:
            return

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Command history is not valid JSON; starting empty")
            return

        if not isinstance(data, list):
            logger.warning(
                "Command history has unexpected shape; starting empty",
                extra={"context": {"type": type(data).__name__}},
            )
            return

        seen: set[str] = set()
        dropped = 0
        for item in data:
            try:
                entry = HistoryEntry.from_dict(item)
            except ValidationError:
                dropped += 1
                continue
            if entry.command_id in seen:
                dropped += 1
                continue
            seen.add(entry.command_id)
            self._entries.append(entry)

        self._sort_and_trim()
        logger.debug(
            "Command history loaded",
            extra={"context": {"entries": len(self._entries), "dropped": dropped}},
        )

    def _save(self) -> None:
        """Write history through to storage. Failures are logged, not raised."""
        payload = json.dumps([entry.to_dict() for entry in self._entries])
        try:
            self._storage.set(self._key, payload)
        except (StorageError, OSError):
            logger.warning("Failed to persist command history", exc_info=True)

    def _sort_and_trim(self) -> None:
        self._entries.sort(key=_sort_key)
        if len(self._entries) > self._max_entries:
            del self._entries[self._max_entries :]

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_usage(self, command_id: str) -> None:
        """Count one use of a command and persist.

        Blank ids are ignored.
        """
        if not command_id:
            return
        self.load()

        now = self.now_millis()
        entry = self.get(command_id)
        if entry is None:
            entry = HistoryEntry(command_id=command_id, last_used_at=now, use_count=1)
            # Front, so a same-millisecond tie keeps the newest use at the cap
            self._entries.insert(0, entry)
        else:
            entry.use_count += 1
            entry.last_used_at = now

        self._sort_and_trim()
        self._save()
        logger.debug(
            "Command usage recorded",
            extra={"context": {"command_id": command_id, "use_count": entry.use_count}},
        )

    def clear(self) -> None:
        """Forget all history, in memory and in storage."""
        self._entries = []
        self._loaded = True
        try:
            self._storage.delete(self._key)
        except (StorageError, OSError):
            logger.warning("Failed to clear persisted command history", exc_info=True)
        logger.info("Command history cleared")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, command_id: str) -> Optional[HistoryEntry]:
        """Entry for a command, or None if it was never used."""
        self.load()
        for entry in self._entries:
            if entry.command_id == command_id:
                return entry
        return None

    def entries(self) -> list[HistoryEntry]:
        """All entries in store order (useCount desc, lastUsedAt desc)."""
        self.load()
        return list(self._entries)

    def is_recent(self, command_id: str) -> bool:
        """True if the command was used within the recency window."""
        entry = self.get(command_id)
        if entry is None:
            return False
        return self.is_recent_entry(entry, self.now_millis())

    def now_millis(self) -> int:
        """Current time from the history clock, in epoch milliseconds."""
        return to_millis(self._now_fn())

    def is_recent_entry(self, entry: HistoryEntry, now: int) -> bool:
        """Recency of one entry against a fixed ``now`` (epoch millis).

        Lets callers judge a whole batch against the same instant.
        """
        window_ms = self._recency_window.total_seconds() * 1000
        return now - entry.last_used_at < window_ms

    def get_recent(self, window: Optional[timedelta] = None) -> list[HistoryEntry]:
        """Entries used within ``window`` (default: the recency window),
        newest first."""
        self.load()
        now = self.now_millis()
        window_ms = (window or self._recency_window).total_seconds() * 1000
        recent = [e for e in self._entries if now - e.last_used_at < window_ms]
        recent.sort(key=lambda e: e.last_used_at, reverse=True)
        return recent

    def get_frequent(self, limit: int = DEFAULT_FREQUENT_LIMIT) -> list[HistoryEntry]:
        """The ``limit`` most-used entries."""
        self.load()
        return list(self._entries[:limit])

    def __len__(self) -> int:
        self.load()
        return len(self._entries)

    def __contains__(self, command_id: object) -> bool:
        return isinstance(command_id, str) and self.get(command_id) is not None


def create_history(
    config: Optional[Config] = None,
    now_fn: Optional[Callable[[], datetime]] = None,
) -> CommandHistory:
    """Build the app's history store from configuration.

    Args:
        config: Configuration to use. Defaults to the cached config.
        now_fn: Clock override, for tests

    Returns:
        A CommandHistory over the configured storage backend
    """
    if config is None:
        config = get_config()
    return CommandHistory(
        storage=open_storage(config),
        max_entries=config.history_max_entries,
        recency_window=config.recency_window,
        now_fn=now_fn,
    )
