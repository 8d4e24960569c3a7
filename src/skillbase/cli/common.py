"""Helpers shared by the skillbase commands: config loading and DB opening."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from skillbase.cli.errors import err_config_invalid, err_db_unavailable, err_schema_failed
from skillbase.config import ConfigError, SkillbaseConfig, load_config, resolve_db_path
from skillbase.db.connection import Database, StoreError
from skillbase.db.schema import SchemaError, ensure_schema


def load_config_or_exit(console: Console) -> SkillbaseConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config_invalid(str(exc)))
        raise typer.Exit(1) from exc


def db_path_for(db: Path | None, cfg: SkillbaseConfig) -> Path:
    """--db wins over the configured path."""
    return db if db is not None else resolve_db_path(cfg)


def open_db_or_exit(db_path: Path, console: Console) -> sqlite3.Connection:
    """Open (or create) the database and apply migrations; exit 1 on failure."""
    try:
        conn = Database(db_path).connect()
    except StoreError as exc:
        console.print(err_db_unavailable(str(exc)))
        raise typer.Exit(1) from exc
    try:
        ensure_schema(conn)
    except SchemaError as exc:
        conn.close()
        console.print(err_schema_failed(str(exc)))
        raise typer.Exit(1) from exc
    return conn
