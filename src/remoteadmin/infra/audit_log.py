"""Append-only SQLite audit log of command execution attempts.

One row is written per completed attempt (success, failure or timeout).
Rows are never updated or deleted by this package.

Storage layout::

    action_history(id INTEGER PRIMARY KEY AUTOINCREMENT,
                   timestamp TEXT,   -- UTC ISO-8601
                   command TEXT,
                   status TEXT,      -- "success" | "failure"
                   output TEXT)

Dependencies: db
Wired in: tools/command_tool.py → CommandGatekeeper.execute(), cli.py
"""

from __future__ import annotations

import sqlite3
from contextlib import closing
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from remoteadmin.db import open_db
from remoteadmin.errors import AuditStoreError

_SCHEMA = """
CREATE TABLE IF NOT EXISTS action_history (
    id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    command TEXT NOT NULL,
    status TEXT NOT NULL,
    output TEXT
)
"""


class AuditStatus(Enum):
    """Textual outcome stored with each audit record."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class AuditRecord:
    """One persisted execution attempt."""

    id: int
    timestamp: str
    command: str
    status: str
    output: str

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "command": self.command,
            "status": self.status,
            "output": self.output,
        }


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditStore:
    """Durable append-only record of command invocations.

    Every operation opens its own connection, so a single store may be
    shared by concurrent request threads; SQLite serialises the writes.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        return open_db(self._db_path)

    def initialize(self) -> None:
        """Create the schema if absent. Safe to call on every startup."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(self._connect()) as conn, conn:
                conn.execute(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise AuditStoreError(f"Failed to initialize audit store: {exc}") from exc

    def append(self, command: str, status: AuditStatus, output: str) -> int:
        """Append one record and return its id."""
        try:
            with closing(self._connect()) as conn, conn:
                cursor = conn.execute(
                    "INSERT INTO action_history (timestamp, command, status, output) "
                    "VALUES (?, ?, ?, ?)",
                    (_utc_now_iso(), command, status.value, output),
                )
                row_id = cursor.lastrowid
        except sqlite3.Error as exc:
            raise AuditStoreError(f"Failed to record action for {command!r}: {exc}") from exc
        if row_id is None:
            raise AuditStoreError(f"No row id assigned for {command!r}")
        return row_id

    def recent(self, limit: int = 20) -> list[AuditRecord]:
        """Return up to *limit* records, newest first."""
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    "SELECT id, timestamp, command, status, output "
                    "FROM action_history ORDER BY id DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise AuditStoreError(f"Failed to read audit records: {exc}") from exc
        return [
            AuditRecord(
                id=int(row["id"]),
                timestamp=str(row["timestamp"]),
                command=str(row["command"]),
                status=str(row["status"]),
                output=row["output"] or "",
            )
            for row in rows
        ]

    def count(self) -> int:
        """Return the number of stored records."""
        try:
            with closing(self._connect()) as conn:
                row = conn.execute("SELECT COUNT(*) FROM action_history").fetchone()
        except sqlite3.Error as exc:
            raise AuditStoreError(f"Failed to count audit records: {exc}") from exc
        return int(row[0])
