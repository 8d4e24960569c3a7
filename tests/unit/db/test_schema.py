"""Tests for ensure_schema()."""

from __future__ import annotations

import sqlite3
from unittest.mock import patch

import pytest

from skillbase.db.connection import Database
from skillbase.db.migrations import current_version
from skillbase.db.schema import CURRENT_VERSION, SchemaError, ensure_schema


def test_ensure_schema_reaches_current_version(tmp_path):
    conn = Database(tmp_path / "s.db").connect()
    ensure_schema(conn)
    assert current_version(conn) == CURRENT_VERSION
    conn.close()


def test_ensure_schema_idempotent(tmp_path):
    conn = Database(tmp_path / "s.db").connect()
    ensure_schema(conn)
    ensure_schema(conn)
    assert current_version(conn) == CURRENT_VERSION
    conn.close()


def test_ensure_schema_wraps_failure_in_schema_error(tmp_path):
    conn = Database(tmp_path / "s.db").connect()
    with patch("skillbase.db.migrations.MIGRATIONS", [(1, "CREATE TABLE broken (;")]):
        with pytest.raises(SchemaError, match="Schema migration failed"):
            ensure_schema(conn)
    conn.close()


def test_schema_error_keeps_cause(tmp_path):
    conn = Database(tmp_path / "s.db").connect()
    with patch("skillbase.db.migrations.MIGRATIONS", [(1, "NOT SQL AT ALL")]):
        with pytest.raises(SchemaError) as excinfo:
            ensure_schema(conn)
    assert isinstance(excinfo.value.__cause__, sqlite3.Error)
    conn.close()
