"""Marginalia CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from marginalia.cli.books import books_app
from marginalia.cli.export import export_cmd
from marginalia.cli.folders import folders_app
from marginalia.cli.init import init_cmd
from marginalia.cli.search import reindex_cmd, search_cmd
from marginalia.cli.snippets import snippets_app
from marginalia.cli.synthesis import narrate_cmd, summarize_cmd
from marginalia.logging_config import configure_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("marginalia")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"marginalia {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="marginalia",
    help=(
        "Marginalia — capture, search, and synthesize snippets from the books you read.\n\n"
        "  marginalia snippets add  Capture a passage (typed or photographed).\n"
        "  marginalia search        Find passages by keyword and by meaning.\n"
        "  marginalia summarize     Summarize and connect ideas across books."
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
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
) -> None:
    """Marginalia — a reading companion for your physical books."""
    configure_logging(verbose)


app.command("init")(init_cmd)
app.command("search")(search_cmd)
app.command("reindex")(reindex_cmd)
app.command("summarize")(summarize_cmd)
app.command("narrate")(narrate_cmd)
app.command("export")(export_cmd)
app.add_typer(folders_app, name="folders")
app.add_typer(books_app, name="books")
app.add_typer(snippets_app, name="snippets")


@app.command("version")
def version_cmd() -> None:
    """Show the installed Marginalia version."""
    typer.echo(f"marginalia {_installed_version()}")


if __name__ == "__main__":
    app()
