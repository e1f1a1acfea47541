"""SQLite key-value persistence for daily aggregates."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .errors import StorageError


DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

MEMORY_PATH = ":memory:"


def open_database(
    path: Union[Path, str], *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    try:
        conn = sqlite3.connect(
            path,
            isolation_level=None,
            check_same_thread=check_same_thread,
        )
        conn.row_factory = sqlite3.Row
        initialize_schema(conn)
    except sqlite3.Error as exc:
        raise StorageError(f"Failed to open database at {path}: {exc}") from exc
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value BLOB NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )


class SQLiteKeyValueStore:
    """Byte values keyed by string, backed by one shared SQLite connection.

    Access to the connection is serialized so the store can be shared between
    the heartbeat thread and request handlers.
    """

    def __init__(self, path: Union[Path, str]) -> None:
        self.path = path if path == MEMORY_PATH else Path(path)
        self._conn = open_database(self.path, check_same_thread=False)
        self._lock = threading.Lock()

    @classmethod
    def open_in_memory(cls) -> "SQLiteKeyValueStore":
        return cls(MEMORY_PATH)

    def get(self, key: str) -> Optional[bytes]:
        row = self._execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        return bytes(row[0]["value"]) if row else None

    def set(self, key: str, value: bytes) -> None:
        self._execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().strftime(DATETIME_FMT)),
        )

    def delete(self, key: str) -> None:
        self._execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def list_keys(self, prefix: str = "") -> list[str]:
        pattern = _escape_like(prefix) + "%"
        rows = self._execute(
            "SELECT key FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
            (pattern,),
        )
        return [row["key"] for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: tuple[object, ...]) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return list(self._conn.execute(sql, params))
            except sqlite3.Error as exc:
                raise StorageError(f"Database operation failed: {exc}") from exc


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
