"""Shared SQLite connection helpers for local stores."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_BUSY_TIMEOUT_SECONDS = 10.0


def open_db(path: Path) -> sqlite3.Connection:
    """Open SQLite with WAL mode and row access by column name."""
    conn = sqlite3.connect(path, timeout=_BUSY_TIMEOUT_SECONDS)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = sqlite3.Row
    return conn
