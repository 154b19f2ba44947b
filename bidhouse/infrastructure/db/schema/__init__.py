from .manager import ensure_schema
from .migrations import CURRENT_SCHEMA_VERSION, SchemaMigrator

__all__ = ["CURRENT_SCHEMA_VERSION", "SchemaMigrator", "ensure_schema"]
