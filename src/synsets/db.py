"""SQLite store for materialized-path concept records.

Every reseed writes a complete record set under a new integer version and
then flips ``meta.current_version`` in one transaction. Readers always bind
their queries to the current version, so they see either the old tree or the
new one, never a half-loaded mix.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from synsets.config import SynsetsConfig

CURRENT_VERSION_KEY = "current_version"
SEEDED_AT_KEY = "seeded_at"

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS concepts (
        version INTEGER NOT NULL,
        path TEXT NOT NULL,
        size INTEGER NOT NULL DEFAULT 0,
        deleted INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (version, path)
    );

    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        val TEXT NOT NULL
    );
"""


def _connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    # A 0-byte file left behind by an interrupted copy gives an opaque
    # "disk I/O error" on PRAGMA; report it plainly instead.
    if db_path.exists() and db_path.stat().st_size == 0:
        msg = (
            f"SQLite DB is empty (0 bytes): {db_path}\n"
            f"Fix: rm {db_path}* && synsets seed"
        )
        raise sqlite3.OperationalError(msg)
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode=WAL")
    except sqlite3.OperationalError as exc:
        conn.close()
        raise sqlite3.OperationalError(
            f"Failed to open DB {db_path}; it may be corrupt.\n"
            f"Fix: rm {db_path}* && synsets seed\n"
            f"Original error: {exc}"
        ) from exc
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(_SCHEMA)
    conn.commit()


def get_conn(cfg: SynsetsConfig) -> sqlite3.Connection:
    """Return a read/write connection with the schema in place."""
    conn = _connect(cfg.db_path)
    ensure_schema(conn)
    return conn


def open_db(db_path: Path) -> sqlite3.Connection:
    """Open a store directly from a file path.

    Convenience for callers (tests, one-off scripts) that don't have a full
    SynsetsConfig.
    """
    conn = _connect(db_path)
    ensure_schema(conn)
    return conn


def get_meta(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT val FROM meta WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def current_version(conn: sqlite3.Connection) -> int | None:
    """Version readers should see, or None before the first seed."""
    val = get_meta(conn, CURRENT_VERSION_KEY)
    return int(val) if val is not None else None


def next_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT MAX(version) FROM concepts").fetchone()
    latest = max(row[0] or 0, current_version(conn) or 0)
    return latest + 1


def open_reader(cfg: SynsetsConfig) -> sqlite3.Connection | None:
    """Connection for read-only callers, or None before the store exists.

    Unlike get_conn this never creates the database file or its schema.
    """
    if not cfg.db_path.exists():
        return None
    return _connect(cfg.db_path)


@contextmanager
def read_snapshot(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Hold one read transaction so every statement sees the same snapshot.

    The pointer read and the row reads that depend on it must not straddle a
    reseed's swap commit. Reentrant: inside an open transaction it does nothing.
    """
    if conn.in_transaction:
        yield conn
        return
    conn.execute("BEGIN")
    try:
        yield conn
    finally:
        conn.commit()
