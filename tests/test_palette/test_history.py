"""Tests for command history."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

from fieldstudio.core.config import Config
from fieldstudio.core.exceptions import (
    PersistenceReadError,
    PersistenceWriteError,
    ValidationError,
)
from fieldstudio.palette.history import (
    HISTORY_STORAGE_KEY,
    CommandHistory,
    create_history,
    to_millis,
    utc_now,
)
from fieldstudio.storage.base import Storage
from fieldstudio.storage.file import FileStorage
from fieldstudio.storage.memory import MemoryStorage


class UnreadableStorage(Storage):
    def get(self, key: str) -> Optional[str]:
        raise PersistenceReadError("disk gone")

    def set(self, key: str, value: str) -> None:
        pass

    def delete(self, key: str) -> None:
        pass


class BrokenDiskStorage(MemoryStorage):
    def get(self, key: str) -> Optional[str]:
        raise OSError(36, "File name too long")


class ReadOnlyStorage(MemoryStorage):
    def set(self, key: str, value: str) -> None:
        raise PersistenceWriteError("read-only")

    def delete(self, key: str) -> None:
        raise PersistenceWriteError("read-only")


def _ids(history: CommandHistory) -> list[str]:
    return [e.command_id for e in history.entries()]


class TestRecordUsage:
    def test_first_use_creates_entry(self, history: CommandHistory, clock) -> None:
        history.record_usage("save")
        entry = history.get("save")
        assert entry is not None
        assert entry.use_count == 1
        assert entry.last_used_at == to_millis(clock())

    def test_repeat_use_increments_and_touches(self, history: CommandHistory, clock) -> None:
        history.record_usage("save")
        clock.advance(minutes=5)
        history.record_usage("save")
        entry = history.get("save")
        assert entry.use_count == 2
        assert entry.last_used_at == to_millis(clock())

    def test_blank_id_ignored(self, history: CommandHistory) -> None:
        history.record_usage("")
        assert len(history) == 0

    def test_writes_through_in_persisted_shape(
        self, history: CommandHistory, memory_storage: MemoryStorage, clock
    ) -> None:
        history.record_usage("save")
        history.record_usage("save")
        stored = json.loads(memory_storage.get(HISTORY_STORAGE_KEY))
        assert stored == [{"commandId": "save", "usedAt": to_millis(clock()), "useCount": 2}]

    def test_contains_and_len(self, history: CommandHistory) -> None:
        history.record_usage("save")
        assert "save" in history
        assert "export" not in history
        assert len(history) == 1


class TestOrdering:
    def test_use_count_descending(self, history: CommandHistory) -> None:
        history.record_usage("export")
        for _ in range(3):
            history.record_usage("save")
        assert _ids(history) == ["save", "export"]

    def test_last_used_breaks_ties(self, history: CommandHistory, clock) -> None:
        history.record_usage("save")
        clock.advance(seconds=1)
        history.record_usage("export")
        assert _ids(history) == ["export", "save"]

    def test_same_millisecond_tie_keeps_newest_first(self, history: CommandHistory) -> None:
        history.record_usage("save")
        history.record_usage("export")
        assert _ids(history) == ["export", "save"]


class TestCap:
    def test_sixty_distinct_ids_capped_at_fifty(self, history: CommandHistory, clock) -> None:
        for i in range(60):
            history.record_usage(f"cmd-{i}")
            clock.advance(seconds=1)

        ids = _ids(history)
        assert len(ids) == 50
        assert set(ids) == {f"cmd-{i}" for i in range(10, 60)}
        assert ids[0] == "cmd-59"

    def test_frequent_command_survives_eviction(self, history: CommandHistory, clock) -> None:
        for _ in range(3):
            history.record_usage("save")
        for i in range(60):
            clock.advance(seconds=1)
            history.record_usage(f"cmd-{i}")

        assert "save" in history
        assert _ids(history)[0] == "save"
        assert len(history) == 50

    def test_custom_cap(self, memory_storage: MemoryStorage, clock) -> None:
        history = CommandHistory(memory_storage, max_entries=3, now_fn=clock)
        for i in range(5):
            clock.advance(seconds=1)
            history.record_usage(f"cmd-{i}")
        assert _ids(history) == ["cmd-4", "cmd-3", "cmd-2"]
        assert len(json.loads(memory_storage.get(HISTORY_STORAGE_KEY))) == 3

    def test_cap_must_be_positive(self, memory_storage: MemoryStorage) -> None:
        with pytest.raises(ValidationError):
            CommandHistory(memory_storage, max_entries=0)


class TestRecency:
    def test_recent_right_after_use(self, history: CommandHistory) -> None:
        history.record_usage("save")
        assert history.is_recent("save")

    def test_still_recent_inside_window(self, history: CommandHistory, clock) -> None:
        history.record_usage("save")
        clock.advance(minutes=59)
        assert history.is_recent("save")

    def test_not_recent_once_window_passes(self, history: CommandHistory, clock) -> None:
        history.record_usage("save")
        clock.advance(hours=1)
        assert not history.is_recent("save")

    def test_use_again_makes_recent_again(self, history: CommandHistory, clock) -> None:
        history.record_usage("save")
        clock.advance(hours=2)
        history.record_usage("save")
        assert history.is_recent("save")

    def test_unknown_command_not_recent(self, history: CommandHistory) -> None:
        assert not history.is_recent("never-used")

    def test_custom_window(self, memory_storage: MemoryStorage, clock) -> None:
        history = CommandHistory(
            memory_storage, recency_window=timedelta(minutes=5), now_fn=clock
        )
        history.record_usage("save")
        clock.advance(minutes=6)
        assert not history.is_recent("save")

    def test_get_recent_newest_first(self, history: CommandHistory, clock) -> None:
        for _ in range(3):
            history.record_usage("save")
        clock.advance(minutes=1)
        history.record_usage("export")
        recent = history.get_recent()
        assert [e.command_id for e in recent] == ["export", "save"]

    def test_get_recent_with_wider_window(self, history: CommandHistory, clock) -> None:
        history.record_usage("save")
        clock.advance(hours=3)
        assert history.get_recent() == []
        assert [e.command_id for e in history.get_recent(timedelta(hours=24))] == ["save"]

    def test_get_frequent_limit(self, history: CommandHistory, clock) -> None:
        for i in range(8):
            clock.advance(seconds=1)
            history.record_usage(f"cmd-{i}")
        assert len(history.get_frequent()) == 5
        assert len(history.get_frequent(limit=2)) == 2


class TestLoading:
    def _history_with(self, raw: str, clock) -> CommandHistory:
        storage = MemoryStorage({HISTORY_STORAGE_KEY: raw})
        return CommandHistory(storage, now_fn=clock)

    def test_missing_data_is_empty(self, history: CommandHistory) -> None:
        assert history.entries() == []

    def test_malformed_json_is_empty(self, clock) -> None:
        assert self._history_with("{not json", clock).entries() == []

    def test_non_list_is_empty(self, clock) -> None:
        assert self._history_with('{"commandId": "save"}', clock).entries() == []

    def test_invalid_entries_dropped(self, clock) -> None:
        raw = json.dumps(
            [
                {"commandId": "save", "usedAt": 1000, "useCount": 2},
                {"commandId": "", "usedAt": 1000, "useCount": 1},
                {"commandId": "export", "usedAt": "yesterday", "useCount": 1},
                {"commandId": "import", "usedAt": 1000, "useCount": 0},
                {"commandId": "grid", "usedAt": True, "useCount": 1},
                "not an object",
                {"commandId": "list", "usedAt": 2000, "useCount": 1},
            ]
        )
        history = self._history_with(raw, clock)
        assert _ids(history) == ["save", "list"]

    def test_duplicate_ids_keep_first(self, clock) -> None:
        raw = json.dumps(
            [
                {"commandId": "save", "usedAt": 1000, "useCount": 2},
                {"commandId": "save", "usedAt": 5000, "useCount": 9},
            ]
        )
        history = self._history_with(raw, clock)
        assert len(history) == 1
        assert history.get("save").use_count == 2

    def test_loaded_data_sorted_and_capped(self, clock) -> None:
        raw = json.dumps(
            [{"commandId": f"cmd-{i}", "usedAt": i, "useCount": 1} for i in range(70)]
        )
        history = self._history_with(raw, clock)
        ids = _ids(history)
        assert len(ids) == 50
        assert ids[0] == "cmd-69"

    def test_loads_only_once(self, history: CommandHistory, memory_storage: MemoryStorage) -> None:
        history.load()
        memory_storage.set(
            HISTORY_STORAGE_KEY,
            json.dumps([{"commandId": "save", "usedAt": 1, "useCount": 1}]),
        )
        history.load()
        assert history.entries() == []
        history.load(force=True)
        assert _ids(history) == ["save"]

    def test_read_error_is_empty(self, clock) -> None:
        history = CommandHistory(UnreadableStorage(), now_fn=clock)
        assert history.entries() == []
        assert history.loaded

    def test_raw_os_error_is_empty(self, clock) -> None:
        history = CommandHistory(BrokenDiskStorage(), now_fn=clock)
        history.load()
        assert history.entries() == []

    def test_overlong_file_key_is_empty(self, tmp_path: Path, clock) -> None:
        history = CommandHistory(FileStorage(tmp_path), key="k" * 300, now_fn=clock)
        history.load()
        assert history.entries() == []
        assert history.loaded


class TestWriteFailures:
    def test_record_survives_write_error(self, clock) -> None:
        history = CommandHistory(ReadOnlyStorage(), now_fn=clock)
        history.record_usage("save")
        assert history.get("save").use_count == 1
        assert history.is_recent("save")

    def test_clear_survives_write_error(self, clock) -> None:
        history = CommandHistory(ReadOnlyStorage(), now_fn=clock)
        history.record_usage("save")
        history.clear()
        assert len(history) == 0


class TestClear:
    def test_clear_forgets_and_deletes(
        self, history: CommandHistory, memory_storage: MemoryStorage
    ) -> None:
        history.record_usage("save")
        history.clear()
        assert len(history) == 0
        assert memory_storage.get(HISTORY_STORAGE_KEY) is None


class TestPersistenceRoundTrip:
    def test_file_storage_survives_restart(self, tmp_path: Path, clock) -> None:
        first = CommandHistory(FileStorage(tmp_path), now_fn=clock)
        for _ in range(2):
            first.record_usage("save")
        first.record_usage("export")

        second = CommandHistory(FileStorage(tmp_path), now_fn=clock)
        assert _ids(second) == ["save", "export"]
        assert second.get("save").use_count == 2
        assert second.is_recent("export")


class TestCreateHistory:
    def test_uses_config_settings(self, mock_config: Config, clock) -> None:
        mock_config.history_max_entries = 7
        mock_config.recency_window_minutes = 15
        history = create_history(mock_config, now_fn=clock)
        assert history.max_entries == 7
        assert history.recency_window == timedelta(minutes=15)
        history.record_usage("save")
        assert history.is_recent("save")


class TestDefaultClock:
    def test_default_clock_is_utc(self) -> None:
        assert utc_now().tzinfo is timezone.utc

    def test_default_clock_stamps_epoch_millis(self, memory_storage: MemoryStorage) -> None:
        history = CommandHistory(memory_storage)
        before = to_millis(datetime.now(timezone.utc))
        history.record_usage("save")
        after = to_millis(datetime.now(timezone.utc))
        assert before <= history.get("save").last_used_at <= after
        assert history.is_recent("save")
