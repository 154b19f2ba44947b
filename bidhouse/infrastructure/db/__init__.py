from .config import (DEFAULT_DB_TIMEOUT, get_default_timeout, get_path_config,
                     get_section, load_config)
from .connection import (DatabaseError, apply_pragmas, get_connection,
                         iso_utcnow, to_iso, transaction)
from .schema import SchemaMigrator, ensure_schema
from .store import SqliteAuctionStore

__all__ = [
    "DEFAULT_DB_TIMEOUT",
    "DatabaseError",
    "SchemaMigrator",
    "SqliteAuctionStore",
    "apply_pragmas",
    "ensure_schema",
    "get_connection",
    "get_default_timeout",
    "get_path_config",
    "get_section",
    "iso_utcnow",
    "load_config",
    "to_iso",
    "transaction",
]
