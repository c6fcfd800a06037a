"""Logging for the palette engine.

Everything logs under the ``fieldstudio`` logger. The host app calls
setup_logging() once; until then records simply propagate to whatever
the host configured.

Structured fields ride along in ``extra={"context": {...}}``:

    logger = get_logger(__name__)
    logger.info("Palette command executed", extra={"context": {"command_id": "save"}})

File output is one JSON object per line, rotated at LOG_MAX_BYTES.
Console output is a short human-readable line with the context appended.
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from fieldstudio.core.config import Config, get_config

ROOT_LOGGER_NAME = "fieldstudio"
LOG_FILENAME = "fieldstudio.log"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        context = _context_of(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Context values can be datetimes, paths, enums...
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVL logger: message [k=v, ...]``"""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{stamp} {record.levelname[:4]:4s} {record.name}: {record.getMessage()}"

        context = _context_of(record)
        if context:
            line += " [" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


_installed_handlers: list[logging.Handler] = []


def setup_logging(
    config: Optional[Config] = None,
    log_dir: Optional[Path] = None,
    console_level: Optional[int] = None,
    file_level: int = logging.DEBUG,
) -> Optional[Path]:
    """Install console and rotating JSON file handlers on the root logger.

    Only the first call does anything until shutdown_logging() is called.

    Args:
        config: Supplies the log directory and debug flag. Defaults to
            the cached config.
        log_dir: Overrides config.log_path
        console_level: Overrides the console level (DEBUG when
            config.debug is set, INFO otherwise)
        file_level: Minimum level written to the log file

    Returns:
        Path of the log file, or None if logging was already set up
    """
    if _installed_handlers:
        return None

    if config is None:
        config = get_config()
    if log_dir is None:
        log_dir = config.log_path
    if console_level is None:
        console_level = logging.DEBUG if config.debug else logging.INFO

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILENAME

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ConsoleFormatter())

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    for handler in (console_handler, file_handler):
        root_logger.addHandler(handler)
        _installed_handlers.append(handler)

    root_logger.info(
        "Logging initialized",
        extra={"context": {"log_file": str(log_file), "debug": config.debug}},
    )
    return log_file


def shutdown_logging() -> None:
    """Remove and close the handlers setup_logging() installed."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """Logger nested under ``fieldstudio``.

    Accepts either a bare module path ("palette.session") or ``__name__``
    from inside the package ("fieldstudio.palette.session").
    """
    prefix = f"{ROOT_LOGGER_NAME}."
    if name.startswith(prefix):
        name = name[len(prefix) :]
    return logging.getLogger(f"{prefix}{name}")
