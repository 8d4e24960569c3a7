"""skillbase status / init — database overview and explicit creation."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from skillbase.cli.common import db_path_for, load_config_or_exit, open_db_or_exit
from skillbase.config import resolve_project_paths
from skillbase.db.migrations import current_version
from skillbase.db.repository import Repository

console = Console()


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default from config)."),
    ] = None,
) -> None:
    """Show what the database holds and where content is read from."""
    cfg = load_config_or_exit(console)
    db_path = db_path_for(db, cfg)
    paths = resolve_project_paths(cfg)

    lines = [
        f"Project root:    {paths.root}",
        f"Skills:          {paths.skills_dir}",
        f"Prompt configs:  {paths.prompt_configs_dir}",
        f"Database:        {db_path}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Project[/]", expand=False))

    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n  Run:  skillbase sync",
                title="[bold]Store[/]",
                expand=False,
            )
        )
        return

    conn = open_db_or_exit(db_path, console)
    try:
        repo = Repository(conn)
        counts = repo.counts()
        last = repo.last_updated()
        version = current_version(conn)
    finally:
        conn.close()

    lines = [
        f"Skills: [bold]{counts['skills']}[/]  |  "
        f"Prompts: [bold]{counts['prompts']}[/]  |  "
        f"Fragments: [bold]{counts['fragments']}[/] "
        f"({counts['fragment_skills']} skill links)",
        f"Last change:     {last or '(never)'}",
        f"Schema version:  {version}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Store[/]", expand=False))


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default from config)."),
    ] = None,
) -> None:
    """Create the database (if missing) and apply all migrations."""
    cfg = load_config_or_exit(console)
    db_path = db_path_for(db, cfg)
    conn = open_db_or_exit(db_path, console)
    try:
        version = current_version(conn)
    finally:
        conn.close()
    console.print(f"[green]✓[/] Database ready: {db_path}  (schema v{version})")
