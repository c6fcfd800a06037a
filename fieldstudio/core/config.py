"""Configuration for the palette engine.

Settings come from FIELDSTUDIO_* environment variables, then a .env file,
then the defaults below. Only storage location, history sizing and the
debug flag are configurable; scoring constants are code-level
(MatchWeights / RankWeights).

Usage:
    from fieldstudio.core.config import get_config, validate_config

    config = get_config()
    for issue in validate_config(config):
        logger.warning(issue)
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Callable, Optional, TypeVar

from fieldstudio.core.exceptions import ConfigurationError

T = TypeVar("T")

STORAGE_BACKENDS = ("file", "sqlite", "memory")
TRUE_VALUES = ("true", "1", "yes", "on")

DEFAULT_DATA_PATH = Path.home() / ".fieldstudio"
DEFAULT_HISTORY_MAX_ENTRIES = 50
DEFAULT_RECENCY_WINDOW_MINUTES = 60


@dataclass
class Config:
    """Palette engine settings.

    Attributes:
        data_path: Directory holding persisted palette state
        log_path: Directory for log files
        storage_backend: Key-value backend ("file", "sqlite" or "memory")
        history_max_entries: Cap on stored command history entries
        recency_window_minutes: How long a use counts as "recent"
        debug: Verbose console logging
    """

    data_path: Path = field(default_factory=lambda: DEFAULT_DATA_PATH)
    log_path: Path = field(default_factory=lambda: DEFAULT_DATA_PATH / "logs")
    storage_backend: str = "file"
    history_max_entries: int = DEFAULT_HISTORY_MAX_ENTRIES
    recency_window_minutes: int = DEFAULT_RECENCY_WINDOW_MINUTES
    debug: bool = False

    @property
    def recency_window(self) -> timedelta:
        return timedelta(minutes=self.recency_window_minutes)


def load_env_file(path: Path) -> dict[str, str]:
    """Read KEY=VALUE pairs from a .env file.

    Blank lines, ``#`` comments and lines without ``=`` are skipped.
    Matching single or double quotes around a value are removed. A
    missing file gives an empty dict.
    """
    if not path.exists():
        return {}

    env_vars: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, _, value = (part.strip() for part in line.partition("="))
        if len(value) >= 2 and value[0] in "\"'" and value[-1] == value[0]:
            value = value[1:-1]
        if key:
            env_vars[key] = value
    return env_vars


def _lookup(
    key: str,
    default: T,
    env_vars: dict[str, str],
    convert: Callable[[str], T],
) -> T:
    """Process environment first, then .env; blank values fall through."""
    for source in (os.environ, env_vars):
        value = source.get(key, "").strip()
        if value:
            return convert(value)
    return default


def _to_path(value: str) -> Path:
    return Path(value).expanduser().resolve()


def _to_bool(value: str) -> bool:
    return value.lower() in TRUE_VALUES


def _int_converter(key: str) -> Callable[[str], int]:
    def convert(value: str) -> int:
        try:
            return int(value)
        except ValueError as e:
            raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e

    return convert


def load_config(env_file: Optional[Path] = None) -> Config:
    """Build a Config from the environment.

    Args:
        env_file: .env file to read. Defaults to .env in the current
            directory.

    Returns:
        Loaded configuration. FIELDSTUDIO_LOG_PATH defaults to the
        "logs" folder inside the data path.

    Raises:
        ConfigurationError: If a numeric setting is not an integer
    """
    if env_file is None:
        env_file = Path.cwd() / ".env"
    env_vars = load_env_file(env_file)

    data_path = _lookup("FIELDSTUDIO_DATA_PATH", DEFAULT_DATA_PATH, env_vars, _to_path)
    return Config(
        data_path=data_path,
        log_path=_lookup("FIELDSTUDIO_LOG_PATH", data_path / "logs", env_vars, _to_path),
        storage_backend=_lookup("FIELDSTUDIO_STORAGE", "file", env_vars, str.lower),
        history_max_entries=_lookup(
            "FIELDSTUDIO_HISTORY_MAX",
            DEFAULT_HISTORY_MAX_ENTRIES,
            env_vars,
            _int_converter("FIELDSTUDIO_HISTORY_MAX"),
        ),
        recency_window_minutes=_lookup(
            "FIELDSTUDIO_RECENT_MINUTES",
            DEFAULT_RECENCY_WINDOW_MINUTES,
            env_vars,
            _int_converter("FIELDSTUDIO_RECENT_MINUTES"),
        ),
        debug=_lookup("FIELDSTUDIO_DEBUG", False, env_vars, _to_bool),
    )


def validate_config(config: Config) -> list[str]:
    """Check a Config before the palette starts using it.

    Issues that would stop the palette from working are prefixed with
    "CRITICAL". The data directory is only checked for backends that
    write to disk; both directories are created if missing.

    Args:
        config: Configuration to validate

    Returns:
        List of issues (empty if valid)
    """
    issues: list[str] = []

    if config.storage_backend not in STORAGE_BACKENDS:
        issues.append(
            f"CRITICAL: Unknown storage backend {config.storage_backend!r}. "
            f"Expected one of: {', '.join(STORAGE_BACKENDS)}."
        )

    if config.history_max_entries < 1:
        issues.append(
            f"CRITICAL: History cap must be at least 1, got {config.history_max_entries}"
        )

    if config.recency_window_minutes < 1:
        issues.append(
            f"Recency window of {config.recency_window_minutes} minutes "
            "means no command is ever shown as recent"
        )

    directories = [("Log", config.log_path)]
    if config.storage_backend != "memory":
        directories.insert(0, ("Data", config.data_path))

    for label, directory in directories:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            issues.append(f"Cannot create {label.lower()} directory {directory}: {e}")
            continue
        if not os.access(directory, os.W_OK):
            issues.append(f"{label} directory not writable: {directory}")

    return issues


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide Config, loaded from the environment on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached Config so the next get_config() reloads it."""
    global _config
    _config = None
