from __future__ import annotations

import sqlite3

from ..connection import iso_utcnow
from .tables import SCHEMA_VERSION_SQL

# Current schema version - increment when making structural changes.
CURRENT_SCHEMA_VERSION = 1


class SchemaMigrator:
    """Tracks ``CURRENT_SCHEMA_VERSION`` in the single-row ``schema_version`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def ensure_version_table(self) -> None:
        self.conn.executescript(SCHEMA_VERSION_SQL)

    def get_version(self) -> int | None:
        """Return the current schema version, or None if not set."""
        self.ensure_version_table()
        row = self.conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        return row[0] if row else None

    def set_version(self, version: int) -> None:
        self.ensure_version_table()
        self.conn.execute("DELETE FROM schema_version")
        self.conn.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (version, iso_utcnow()),
        )

    def ensure_current_version(self) -> None:
        current = self.get_version()
        if current is None or current < CURRENT_SCHEMA_VERSION:
            self.set_version(CURRENT_SCHEMA_VERSION)
