"""Tests for the in-memory storage backend."""

from fieldstudio.storage.memory import MemoryStorage


class TestMemoryStorage:
    def test_get_missing_is_none(self) -> None:
        assert MemoryStorage().get("field-studio:command-history") is None

    def test_set_get_delete(self) -> None:
        storage = MemoryStorage()
        storage.set("k", "one")
        storage.set("k", "two")
        assert storage.get("k") == "two"
        storage.delete("k")
        assert storage.get("k") is None

    def test_delete_missing_is_fine(self) -> None:
        MemoryStorage().delete("never-set")

    def test_initial_values_are_copied(self) -> None:
        initial = {"a": "1"}
        storage = MemoryStorage(initial)
        storage.set("b", "2")
        assert initial == {"a": "1"}
        assert storage.keys() == ["a", "b"]
