"""Logging configuration utilities for resiliencesim.

The library is silent by default (NullHandler on the ``resiliencesim``
logger). Call one of the enable_* helpers to see what a run is doing.

Example usage:
    import resiliencesim

    resiliencesim.enable_console_logging(level="DEBUG")
    resiliencesim.enable_file_logging("logs/run.log", max_bytes=10_000_000)
    resiliencesim.enable_json_logging()
    resiliencesim.configure_from_env()

Log records carry the virtual tick of the run that produced them as
``record.tick`` (``-`` outside a run), so formats can use ``%(tick)s``.

Environment variables:
    RS_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    RS_LOG_FILE: Path to log file (enables rotating file logging)
    RS_LOG_JSON: Set to "1" for JSON output
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from resiliencesim.core.metronome import Metronome

__all__ = [
    "TickFilter",
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - t=%(tick)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "resiliencesim"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class TickFilter(logging.Filter):
    """Stamps each record with the current tick of a metronome.

    Attach a metronome with ``watch()``; until then, or once the metronome
    is stopped, records get ``tick = "-"``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._metronome: Metronome | None = None

    def watch(self, metronome: Metronome | None) -> None:
        self._metronome = metronome

    def filter(self, record: logging.LogRecord) -> bool:
        metronome = self._metronome
        if metronome is not None and metronome.running:
            record.tick = f"{metronome.now:g}"
        else:
            record.tick = "-"
        return True


tick_filter = TickFilter()
"""Shared filter installed on every handler created here."""


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Example output:
        {"timestamp": "2024-01-15T10:30:00.123456+00:00", "tick": "120",
         "level": "INFO", "logger": "resiliencesim.simulation",
         "message": "Run started: ..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "tick": getattr(record, "tick", "-"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def _get_level(level: str | int) -> int:
    """Convert a level string or int to a logging level constant."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Remove and close all handlers from the resiliencesim logger except NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def _install(handler: logging.Handler, level: LogLevel | int, formatter: logging.Formatter) -> None:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    handler.setFormatter(formatter)
    handler.addFilter(tick_filter)
    logger.addHandler(handler)


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Enable console (stderr) logging.

    Args:
        level: Log level name or int.
        format: Log message format string; may use ``%(tick)s``.
        date_format: Date format string for %(asctime)s.

    Returns:
        The created StreamHandler.
    """
    handler = logging.StreamHandler()
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    json_format: bool = False,
) -> RotatingFileHandler:
    """Enable rotating file logging.

    Args:
        path: Path to the log file. Parent directories are created automatically.
        level: Log level name or int.
        max_bytes: Size at which the file is rotated. Default 10 MB.
        backup_count: Number of rotated files to keep. Default 5.
        json_format: Write JSON lines instead of plain text.

    Returns:
        The created RotatingFileHandler.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    formatter = JsonFormatter() if json_format else logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT)
    _install(handler, level, formatter)
    return handler


def enable_json_logging(level: LogLevel | int = "INFO") -> logging.StreamHandler:
    """Enable JSON console logging, one object per line on stderr."""
    handler = logging.StreamHandler()
    _install(handler, level, JsonFormatter())
    return handler


def configure_from_env() -> None:
    """Configure logging from RS_LOGGING, RS_LOG_FILE and RS_LOG_JSON.

    Does nothing if neither RS_LOGGING nor RS_LOG_FILE is set.
    """
    level = os.environ.get("RS_LOGGING", "").upper()
    log_file = os.environ.get("RS_LOG_FILE", "")
    use_json = os.environ.get("RS_LOG_JSON", "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"

    if log_file:
        enable_file_logging(log_file, level=level, json_format=use_json)
    elif use_json:
        enable_json_logging(level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    """Set the log level of the resiliencesim logger."""
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the log level for one submodule, e.g. ``"stages.circuit_breaker"``."""
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Remove all handlers and silence the library."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
