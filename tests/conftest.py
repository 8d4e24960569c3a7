"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillbase.config import ProjectPaths
from skillbase.db.connection import Database
from skillbase.db.schema import ensure_schema


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "skillbase.db")
    conn = db.connect()
    ensure_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def project(tmp_path: Path) -> ProjectPaths:
    """Empty project tree: skills/, prompts/, prompt_configs/ under tmp_path/project."""
    paths = ProjectPaths.from_root(tmp_path / "project")
    for d in (paths.skills_dir, paths.prompts_dir, paths.prompt_configs_dir):
        d.mkdir(parents=True)
    return paths


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path_factory, monkeypatch):
    """Point XDG_CONFIG_HOME at an empty dir and clear SKILLBASE_* overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    monkeypatch.delenv("SKILLBASE_DB_PATH", raising=False)
    monkeypatch.delenv("SKILLBASE_PROJECT_ROOT", raising=False)
