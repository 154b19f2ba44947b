from __future__ import annotations

import sqlite3

from .migrations import SchemaMigrator
from .tables import (SCHEMA_AUCTIONS_SQL, SCHEMA_BIDS_SQL,
                     SCHEMA_NOTIFICATIONS_SQL)


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create all Bidhouse tables and record the schema version."""

    conn.executescript(SCHEMA_AUCTIONS_SQL)
    conn.executescript(SCHEMA_BIDS_SQL)
    conn.executescript(SCHEMA_NOTIFICATIONS_SQL)
    SchemaMigrator(conn).ensure_current_version()
