"""skillbase sync — mirror skills, prompts, and prompt fragments into the database.

Passes (in order):
  skills      {root}/skills/**/*.md
  prompts     {root}/prompt_configs/*.yaml  +  {root}/prompts/<name>.md
  fragments   prompt_configs/*.yaml  →  "<name>-embedded" fragment

Exit code is 0 whenever the run completes, even if individual files failed
(they are listed and counted). Only a database or schema failure exits 1.

Usage:
  skillbase sync
  skillbase sync --project-root ~/notes --db ./skills.db --prune
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from skillbase.cli.common import db_path_for, load_config_or_exit
from skillbase.cli.errors import err_db_unavailable, err_schema_failed, warn_sync_incomplete
from skillbase.config import resolve_project_paths
from skillbase.db.connection import Database, StoreError
from skillbase.db.schema import SchemaError
from skillbase.sync.engine import SyncReport, sync_all

console = Console()


def sync_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default from config)."),
    ] = None,
    project_root: Annotated[
        Path | None,
        typer.Option("--project-root", "-r", help="Directory holding skills/, prompts/, prompt_configs/."),
    ] = None,
    prune: Annotated[
        bool,
        typer.Option("--prune", help="Delete rows whose source files no longer exist."),
    ] = False,
) -> None:
    """Sync skills, prompts, and prompt fragments into the database."""
    cfg = load_config_or_exit(console)
    if project_root is not None:
        cfg.project.root = str(project_root)
    paths = resolve_project_paths(cfg)
    db_path = db_path_for(db, cfg)

    try:
        conn = Database(db_path).connect()
    except StoreError as exc:
        console.print(err_db_unavailable(str(exc)))
        raise typer.Exit(1) from exc

    try:
        report = sync_all(conn, paths, console=console, prune=prune)
    except SchemaError as exc:
        console.print(err_schema_failed(str(exc)))
        raise typer.Exit(1) from exc
    finally:
        conn.close()

    _show_summary(report)
    if not report.complete:
        console.print(f"\n{warn_sync_incomplete(report.errored)}")


def _show_summary(report: SyncReport) -> None:
    table = Table(title="Sync summary", show_header=True, header_style="bold")
    table.add_column("Pass", style="bold")
    table.add_column("Synced", justify="right")
    table.add_column("Unchanged", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Warnings", justify="right")

    for p in report.passes:
        errors = f"[red]{p.errored}[/]" if p.errored else "0"
        warns = f"[yellow]{len(p.warnings)}[/]" if p.warnings else "0"
        table.add_row(p.name, str(p.synced), str(p.skipped), errors, warns)

    console.print()
    console.print(table)
    if report.pruned:
        console.print(f"  Pruned {report.pruned} stale rows")
