"""skillbase database layer."""

from skillbase.db.connection import Database, StoreError
from skillbase.db.migrations import MIGRATIONS, run_migrations
from skillbase.db.repository import Repository
from skillbase.db.schema import SchemaError, ensure_schema

__all__ = [
    "Database",
    "Repository",
    "StoreError",
    "SchemaError",
    "ensure_schema",
    "run_migrations",
    "MIGRATIONS",
]
