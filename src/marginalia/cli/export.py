"""marginalia export command.

Usage:
  marginalia export [--format markdown|obsidian|notion] [--book ID] [--output notes.md]
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from marginalia.cli.context import DEFAULT_OWNER, DbOption, OwnerOption, console, open_library
from marginalia.services.export import DIALECTS


def export_cmd(
    fmt: Annotated[
        str,
        typer.Option("--format", "-f", help=f"Output dialect: {', '.join(DIALECTS)}."),
    ] = "markdown",
    book: Annotated[str | None, typer.Option("--book", "-b", help="Only this book.")] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this file instead of stdout."),
    ] = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
) -> None:
    """Export snippets as quotes for your notes app."""
    with open_library(db) as lib:
        result = lib.exporter.export(owner, dialect=fmt, book_id=book)

    if output is None:
        typer.echo(result.content)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.content + "\n", encoding="utf-8")
    console.print(f"  [green]✓[/] Written to [bold]{output}[/]")
