from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

from .errors import PersistenceReadFailure, PersistenceWriteFailure
from .settings import settings


_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  level TEXT NOT NULL,
  entry_id TEXT,
  message TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS kv (
  key TEXT PRIMARY KEY,
  value BLOB NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
"""

_initialized: set[str] = set()


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (Docker creates one for a missing
    bind-mounted file), the DB file is placed inside it.
    """

    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "srr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    path = _resolve_db_path()
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if path not in _initialized:
        conn.executescript(_SCHEMA)
        _initialized.add(path)
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(_SCHEMA)


def log_event(level: str, message: str, entry_id: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, entry_id, message) VALUES (?, ?, ?, ?)",
            (utc_now(), level.upper(), entry_id, message),
        )


def try_log_event(level: str, message: str, entry_id: str | None = None) -> str | None:
    """Journal an event without letting a SQLite error escape.

    Returns None on success, else a description of the failed write for the
    caller to report.
    """
    try:
        log_event(level, message, entry_id=entry_id)
    except sqlite3.Error as e:
        return f"journal write failed: {type(e).__name__}: {e}"
    return None


def latest_events(limit: int = 100, entry_id: str | None = None) -> list[dict[str, Any]]:
    with connect() as conn:
        if entry_id:
            rows = conn.execute(
                "SELECT * FROM events WHERE entry_id=? ORDER BY id DESC LIMIT ?",
                (entry_id, limit),
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]


class SqliteKV:
    """Key-value store kept in the local SQLite file.

    Used instead of Consul KV when SRR_KV_BACKEND=sqlite.
    """

    def get(self, key: str) -> bytes | None:
        try:
            with connect() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise PersistenceReadFailure(f"sqlite read of {key!r} failed: {e}") from e
        return bytes(row["value"]) if row else None

    def put(self, key: str, value: bytes) -> None:
        try:
            with connect() as conn:
                conn.execute(
                    """
                    INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                    """,
                    (key, sqlite3.Binary(value), utc_now()),
                )
        except sqlite3.Error as e:
            raise PersistenceWriteFailure(f"sqlite write of {key!r} failed: {e}") from e
