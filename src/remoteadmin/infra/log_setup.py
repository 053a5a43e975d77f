"""Operational logging: one JSON object per line, to stdout or an append-only file.

Distinct from the audit log; this is for operators reading service output.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from remoteadmin.config import LoggingConfig

ROOT_LOGGER_NAME = "remoteadmin"

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(name: str) -> int:
    """Map a config level name to a ``logging`` level. Raises ``ValueError``."""
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown log level {name!r}. Must be one of {sorted(_LEVELS)}.") from None


class JsonLineFormatter(logging.Formatter):
    """Render records as ``{"timestamp", "level", "logger", "message"}`` JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, str] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(
                timespec="seconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(config: LoggingConfig) -> logging.Handler:
    """Install the JSON handler on the package logger and return it.

    Replaces any handler installed by a previous call.
    """
    handler: logging.Handler
    if config.path is not None:
        config.path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.path, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonLineFormatter())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for existing in list(logger.handlers):
        if isinstance(existing.formatter, JsonLineFormatter):
            logger.removeHandler(existing)
            existing.close()
    logger.addHandler(handler)
    logger.setLevel(parse_level(config.level))
    return handler
