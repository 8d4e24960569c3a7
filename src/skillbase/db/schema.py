"""Schema entry point: the one call a sync run makes before touching the store."""

from __future__ import annotations

import sqlite3

from skillbase.db.migrations import MIGRATIONS, run_migrations

CURRENT_VERSION = MIGRATIONS[-1][0]


class SchemaError(RuntimeError):
    """Raised when migrations cannot be applied. No partial schema is usable."""


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Bring the database up to CURRENT_VERSION (idempotent).

    Raises:
        SchemaError: if any migration fails.
    """
    try:
        run_migrations(conn)
    except sqlite3.Error as exc:
        raise SchemaError(f"Schema migration failed: {exc}") from exc
