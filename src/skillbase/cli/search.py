"""skillbase search — BM25 full-text search over synced skills."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from skillbase.cli.common import db_path_for, load_config_or_exit, open_db_or_exit
from skillbase.cli.errors import err_no_db, err_no_results
from skillbase.db.repository import Repository

console = Console()


def search_cmd(
    query: Annotated[str, typer.Argument(help="Words to search for.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default from config)."),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Maximum results (default: search.max_results)."),
    ] = None,
    category: Annotated[
        str | None,
        typer.Option("--category", "-c", help="Only this category and its sub-categories."),
    ] = None,
) -> None:
    """Search skills by title, description, and content."""
    cfg = load_config_or_exit(console)
    db_path = db_path_for(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    conn = open_db_or_exit(db_path, console)
    try:
        results = Repository(conn).search_skills(
            query, limit=limit or cfg.search.max_results, category=category
        )
    finally:
        conn.close()

    if not results:
        console.print(err_no_results(query))
        raise typer.Exit(0)

    table = Table(title=f"Skills matching '{query}'", show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Title")
    table.add_column("Tokens", justify="right")
    for skill, _score in results:
        table.add_row(skill.name, skill.category, skill.title or "", f"{skill.token_count:,}")
    console.print(table)
