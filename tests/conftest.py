"""Shared pytest fixtures for Field Studio tests.

Fixtures:
    - clock: Controllable clock, starts 2026-02-05 10:00
    - memory_storage: Fresh in-memory key-value store
    - history: CommandHistory over memory_storage and clock
    - executed: List that sample command actions append their ids to
    - make_command: Factory for ad-hoc commands
    - sample_commands: Small archive-app catalog
    - mock_config: Test configuration with temp paths
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from fieldstudio.core.config import Config
from fieldstudio.palette.history import CommandHistory
from fieldstudio.palette.models import Command
from fieldstudio.storage.memory import MemoryStorage


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 2, 5, 10, 0, 0))


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def history(memory_storage: MemoryStorage, clock: FakeClock) -> CommandHistory:
    return CommandHistory(memory_storage, now_fn=clock)


@pytest.fixture
def executed() -> list[str]:
    return []


def _make_command(command_id: str, label: str, section: str, sink=None, **kwargs) -> Command:
    """Command whose action appends its id to ``sink`` (if given)."""

    def _action(context) -> None:
        if sink is not None:
            sink.append(command_id)

    return Command(id=command_id, label=label, section=section, action=_action, **kwargs)


@pytest.fixture
def make_command():
    """Factory for catalog commands: make_command(id, label, section, sink=None, **fields)."""
    return _make_command


@pytest.fixture
def sample_commands(executed: list[str]) -> list[Command]:
    """Catalog shaped like the archive app's palette."""
    return [
        _make_command("open-palette", "Open Command Palette", "Navigation", executed),
        _make_command("save", "Save Project", "Editing", executed, shortcut="Ctrl+S"),
        _make_command(
            "export",
            "Export IIIF Manifest",
            "Export",
            executed,
            description="Download the collection as a IIIF manifest",
        ),
        _make_command("import-csv", "Import CSV Metadata", "Import", executed),
        _make_command("view-grid", "Grid View", "View", executed, icon="grid_view"),
        _make_command("view-list", "List View", "View", executed, icon="list"),
    ]


@pytest.fixture
def mock_config(tmp_path: Path) -> Config:
    """Test configuration with temp paths."""
    return Config(
        data_path=tmp_path / "data",
        log_path=tmp_path / "logs",
        storage_backend="memory",
        debug=True,
    )


# Markers for different test types
def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests requiring external services")
