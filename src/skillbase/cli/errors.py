"""skillbase rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from skillbase.cli.errors import err_no_db
    console.print(err_no_db(str(db_path)))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape


def err_no_db(db_path: str) -> str:
    """No database file at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{escape(db_path)}'.\n"
        "  Run:  skillbase sync   (or skillbase init for an empty database)"
    )


def err_db_unavailable(detail: str) -> str:
    """The database file could not be opened."""
    return (
        f"[red]Error:[/] {escape(detail)}\n"
        "  Check that the directory exists and is writable, or pass --db PATH."
    )


def err_schema_failed(detail: str) -> str:
    """Migrations failed; nothing was synced."""
    return (
        f"[red]Error:[/] {escape(detail)}\n"
        "  The database schema could not be brought up to date; no files were synced.\n"
        "  If the file is from an incompatible version, move it aside and re-run:  skillbase sync"
    )


def err_config_invalid(detail: str) -> str:
    """A config file holds an invalid value."""
    return (
        f"[red]Error:[/] {escape(detail)}\n"
        "  Fix the value in skillbase.yaml (or the global config.yaml) and try again."
    )


def err_no_results(query: str) -> str:
    """Search matched nothing."""
    return (
        f"[yellow]No skills match[/] '{escape(query)}'.\n"
        "  Try fewer words, or run:  skillbase sync  to refresh the index."
    )


def warn_sync_incomplete(errored: int) -> str:
    """Shown after a sync in which some files failed."""
    noun = "file" if errored == 1 else "files"
    return (
        f"[yellow]⚠[/] Sync incomplete: {errored} {noun} could not be synced.\n"
        "  Fix the files listed above and run:  skillbase sync"
    )
