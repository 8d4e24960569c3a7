"""Tests for skillbase rich error messages."""

from __future__ import annotations

import pytest

from skillbase.cli.errors import (
    err_config_invalid,
    err_db_unavailable,
    err_no_db,
    err_no_results,
    err_schema_failed,
    warn_sync_incomplete,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _has_what_and_action(msg: str) -> bool:
    """Every error must contain a cause AND an actionable instruction."""
    lower = msg.lower()
    return any(kw in lower for kw in ["run:", "skillbase ", "pass --db", "fix "])


@pytest.mark.parametrize(
    "msg",
    [
        err_no_db("/tmp/x.db"),
        err_db_unavailable("Cannot open database"),
        err_schema_failed("Schema migration failed: near NOT"),
        err_config_invalid("search.max_results must be >= 1"),
        err_no_results("malli"),
        warn_sync_incomplete(2),
    ],
)
def test_every_message_is_actionable(msg: str) -> None:
    assert _has_what_and_action(msg)


def test_err_no_db_contains_path() -> None:
    assert "/tmp/x.db" in err_no_db("/tmp/x.db")


def test_err_no_db_suggests_sync() -> None:
    assert "skillbase sync" in err_no_db("/tmp/x.db")


def test_err_schema_failed_says_nothing_synced() -> None:
    assert "no files were synced" in err_schema_failed("boom")


def test_err_no_results_escapes_markup() -> None:
    msg = err_no_results("[bold]x")
    assert "\\[bold]x" in msg


def test_err_config_invalid_includes_detail() -> None:
    assert "max_results" in err_config_invalid("search.max_results must be >= 1")


def test_warn_sync_incomplete_singular() -> None:
    assert "1 file could" in warn_sync_incomplete(1)


def test_warn_sync_incomplete_plural() -> None:
    assert "3 files could" in warn_sync_incomplete(3)
