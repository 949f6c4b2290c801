"""marginalia books CLI commands.

Commands:
  marginalia books add --title T --author A   — add a book by hand
  marginalia books lookup --isbn N             — add a book from Google Books
  marginalia books scan COVER.jpg              — add a book from a cover photo
  marginalia books list [--folder ID]          — list books
  marginalia books show ID                     — show one book
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
    require,
)
from marginalia.db.models import Book

books_app = typer.Typer(
    name="books",
    help="Manage books (add, lookup, scan, list, show).",
    add_completion=False,
)

FolderOption = Annotated[
    str | None,
    typer.Option("--folder", help="Folder id ('default' for the default folder)."),
]


def _print_book(book: Book, as_json: bool) -> None:
    if as_json:
        echo_json(book.to_dict())
        return
    console.print(f"  [green]✓[/] [bold]{book.title}[/] by {book.author}")
    console.print(f"    [dim]id:[/] {book.id}  [dim]folder:[/] {book.folder_id}")
    if book.isbn:
        console.print(f"    [dim]isbn:[/] {book.isbn}")
    if book.cover_url:
        console.print(f"    [dim]cover:[/] {book.cover_url}")


@books_app.command("add")
def books_add_cmd(
    title: Annotated[str, typer.Option("--title", help="Book title.")],
    author: Annotated[str, typer.Option("--author", help="Book author.")],
    isbn: Annotated[str | None, typer.Option("--isbn", help="ISBN-10 or ISBN-13.")] = None,
    folder: FolderOption = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Add a book by title and author."""
    with open_library(db) as lib:
        book = lib.books.create(owner, title, author, isbn=isbn, folder_id=folder)
    _print_book(book, as_json)


@books_app.command("lookup")
def books_lookup_cmd(
    isbn: Annotated[str | None, typer.Option("--isbn", help="ISBN to look up.")] = None,
    title: Annotated[str | None, typer.Option("--title", help="Title to search for.")] = None,
    author: Annotated[str | None, typer.Option("--author", help="Author to search for.")] = None,
    folder: FolderOption = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Look a book up on Google Books and add the first match."""
    with open_library(db) as lib:
        book = lib.books.lookup_and_create(
            owner, isbn=isbn, title=title, author=author, folder_id=folder
        )
    if book is None:
        console.print(
            "[yellow]No matching book found.[/]\n"
            "  Use:  marginalia books add --title ... --author ...  to add it by hand."
        )
        raise typer.Exit(1)
    _print_book(book, as_json)


@books_app.command("scan")
def books_scan_cmd(
    cover: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Photo of the book cover."),
    ],
    folder: FolderOption = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Add a book from a photo of its cover."""
    with open_library(db) as lib:
        book = lib.books.create_from_cover(owner, cover.read_bytes(), folder_id=folder)
    _print_book(book, as_json)


@books_app.command("list")
def books_list_cmd(
    folder: FolderOption = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """List books, newest first."""
    with open_library(db) as lib:
        books = lib.books.list_by_owner(owner, folder_id=folder)
    if as_json:
        echo_json([b.to_dict() for b in books])
        return
    if not books:
        console.print("[yellow]No books yet.[/]  Run:  marginalia books add --title ... --author ...")
        return

    table = Table(title="Books", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Folder")
    for book in books:
        table.add_row(book.id, book.title, book.author, book.folder_id)
    console.print(table)


@books_app.command("show")
def books_show_cmd(
    book_id: Annotated[str, typer.Argument(help="Book id.")],
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Show one book."""
    with open_library(db) as lib:
        book = require(lib.books.get(owner, book_id), "Book", book_id)
    _print_book(book, as_json)
