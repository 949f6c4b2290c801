"""marginalia snippets CLI commands.

Commands:
  marginalia snippets add --book ID (--text T | --image PHOTO) [--page N]
  marginalia snippets list [--book ID]
  marginalia snippets edit ID --text T
  marginalia snippets rm ID
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from marginalia.cli.context import (
    DEFAULT_OWNER,
    DbOption,
    JsonOption,
    OwnerOption,
    console,
    echo_json,
    open_library,
    preview,
    require,
)
from marginalia.errors import NotFoundError

snippets_app = typer.Typer(
    name="snippets",
    help="Capture and manage snippets (add, list, edit, rm).",
    add_completion=False,
)


@snippets_app.command("add")
def snippets_add_cmd(
    book: Annotated[str, typer.Option("--book", "-b", help="Book id the snippet comes from.")],
    text: Annotated[str | None, typer.Option("--text", "-t", help="Snippet text.")] = None,
    image: Annotated[
        Path | None,
        typer.Option("--image", exists=True, dir_okay=False, help="Photo of the page to OCR."),
    ] = None,
    page: Annotated[int | None, typer.Option("--page", "-p", help="Page number.")] = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Capture a snippet from text or from a photo of the page."""
    image_bytes = image.read_bytes() if image else None
    with open_library(db) as lib:
        snippet = lib.snippets.create(
            owner, book, text=text, image_bytes=image_bytes, page_number=page
        )
    if as_json:
        echo_json(snippet.to_dict())
        return
    console.print(f"  [green]✓[/] Snippet {snippet.id}")
    console.print(f"    [dim]{preview(snippet.text)}[/]")


@snippets_app.command("list")
def snippets_list_cmd(
    book: Annotated[str | None, typer.Option("--book", "-b", help="Only this book.")] = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """List snippets, newest first."""
    with open_library(db) as lib:
        snippets = lib.snippets.list_by_owner(owner, book_id=book)
    if as_json:
        echo_json([s.to_dict() for s in snippets])
        return
    if not snippets:
        console.print("[yellow]No snippets yet.[/]  Run:  marginalia snippets add --book ID --text ...")
        return

    table = Table(title="Snippets", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Book", style="dim")
    table.add_column("Page", justify="right")
    table.add_column("Text")
    for s in snippets:
        page_str = str(s.page_number) if s.page_number is not None else ""
        table.add_row(s.id, s.book_id, page_str, preview(s.text))
    console.print(table)


@snippets_app.command("edit")
def snippets_edit_cmd(
    snippet_id: Annotated[str, typer.Argument(help="Snippet id.")],
    text: Annotated[str, typer.Option("--text", "-t", help="Replacement text.")],
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Replace a snippet's text."""
    with open_library(db) as lib:
        snippet = require(lib.snippets.update(owner, snippet_id, text), "Snippet", snippet_id)
    if as_json:
        echo_json(snippet.to_dict())
        return
    console.print(f"  [green]✓[/] Updated snippet {snippet.id}")


@snippets_app.command("rm")
def snippets_rm_cmd(
    snippet_id: Annotated[str, typer.Argument(help="Snippet id.")],
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
) -> None:
    """Delete a snippet."""
    with open_library(db) as lib:
        if not lib.snippets.delete(owner, snippet_id):
            raise NotFoundError("Snippet", snippet_id)
    console.print(f"  [green]✓[/] Deleted snippet {snippet_id}")
