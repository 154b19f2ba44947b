from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from .config import get_default_timeout, get_path_config, get_section


class DatabaseError(Exception):
    """Custom exception for database connection errors."""


def to_iso(moment: datetime) -> str:
    """Render an aware datetime as ISO-8601 UTC text with ``Z`` suffix."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def iso_utcnow() -> str:
    """Return an ISO-8601 timestamp in UTC with ``Z`` suffix."""

    return to_iso(datetime.now(timezone.utc))


def apply_pragmas(
    conn: sqlite3.Connection,
    *,
    enable_wal: bool = True,
    foreign_keys: bool = True,
    busy_timeout_ms: int | None = None,
) -> None:
    """Apply SQLite PRAGMAs required by Bidhouse."""

    try:
        if enable_wal:
            conn.execute("PRAGMA journal_mode=WAL;")
        if foreign_keys:
            conn.execute("PRAGMA foreign_keys=ON;")
        if busy_timeout_ms is not None:
            conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)};")
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to apply PRAGMAs: {exc}") from exc


@contextmanager
def get_connection(
    db_path: str | Path | None = None,
    *,
    timeout: float | None = None,
    enable_wal: bool | None = None,
    foreign_keys: bool | None = None,
) -> Iterator[sqlite3.Connection]:
    """Yield a configured SQLite connection.

    The connection runs in autocommit mode (``isolation_level=None``) so
    writers open their transactions explicitly with :func:`transaction`.
    """

    resolved_db_path = (
        Path(db_path) if db_path is not None else get_path_config()["db_path"]
    )
    resolved_db_path.parent.mkdir(parents=True, exist_ok=True)
    timeout_value = timeout if timeout is not None else get_default_timeout()
    try:
        conn = sqlite3.connect(
            resolved_db_path, timeout=timeout_value, isolation_level=None
        )
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to connect to database: {exc}") from exc
    try:
        db_cfg = get_section("db")
        apply_pragmas(
            conn,
            enable_wal=(
                enable_wal
                if enable_wal is not None
                else bool(db_cfg.get("enable_wal", True))
            ),
            foreign_keys=(
                foreign_keys
                if foreign_keys is not None
                else bool(db_cfg.get("foreign_keys", True))
            ),
            busy_timeout_ms=int(timeout_value * 1000),
        )
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block inside ``BEGIN IMMEDIATE``; commit on success, else roll back.

    ``IMMEDIATE`` takes the write lock up front so a read-check-write
    sequence inside the block cannot interleave with another writer.
    """

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")
