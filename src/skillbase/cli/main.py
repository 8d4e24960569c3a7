"""skillbase CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from skillbase.cli.search import search_cmd
from skillbase.cli.status import init_cmd, status_cmd
from skillbase.cli.sync import sync_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("skillbase")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"skillbase {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="skillbase",
    help=(
        "skillbase — local knowledge base of markdown skills and prompts.\n\n"
        "  skillbase sync    Mirror skills/, prompts/ and prompt_configs/ into SQLite.\n"
        "  skillbase search  Full-text search over synced skills."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """skillbase — local knowledge base of markdown skills and prompts."""


app.command("sync")(sync_cmd)
app.command("search")(search_cmd)
app.command("status")(status_cmd)
app.command("init")(init_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed skillbase version."""
    typer.echo(f"skillbase {_installed_version()}")


if __name__ == "__main__":
    app()
