"""marginalia summarize and narrate commands.

Usage:
  marginalia summarize [--book ID] [--snippet ID ...]
  marginalia narrate [--text T | --source summary|snippets] [--voice academic]
"""

from __future__ import annotations

from typing import Annotated

import typer

from marginalia.cli.context import (
    DEFAULT_OWNER,
    DbOption,
    JsonOption,
    OwnerOption,
    console,
    echo_json,
    open_library,
)
from marginalia.providers.llm import VOICES

BookOption = Annotated[
    str | None,
    typer.Option("--book", "-b", help="Only snippets from this book."),
]
SnippetIdsOption = Annotated[
    list[str] | None,
    typer.Option("--snippet", "-s", help="Snippet id (repeatable; first 10 are used)."),
]


def summarize_cmd(
    book: BookOption = None,
    snippet: SnippetIdsOption = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Summarize snippets and find connections across books."""
    with open_library(db) as lib:
        result = lib.synthesis.summarize(owner, book_id=book, snippet_ids=snippet or None)
    if as_json:
        echo_json(result.to_dict())
        return

    console.print("\n[bold]Executive summary[/]")
    for point in result.executive_summary:
        console.print(f"  • {point}")
    if result.cognitive_connections:
        console.print("\n[bold]Cognitive connections[/]")
        for c in result.cognitive_connections:
            console.print(f"  • {c.snippet}")
            console.print(f"    [dim]↔ {c.related_book}:[/] {c.related_quote}")


def narrate_cmd(
    text: Annotated[str | None, typer.Option("--text", "-t", help="Text to read aloud.")] = None,
    source: Annotated[
        str | None,
        typer.Option("--source", help="'summary' or 'snippets' when no --text is given."),
    ] = None,
    book: BookOption = None,
    snippet: SnippetIdsOption = None,
    voice: Annotated[
        str | None,
        typer.Option("--voice", help=f"Narrator: {', '.join(VOICES)} (default: speech.voice)."),
    ] = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Read a summary or snippets aloud and print a link to the MP3."""
    with open_library(db) as lib:
        result = lib.narration.narrate(
            owner,
            text=text,
            source=source,
            book_id=book,
            snippet_ids=snippet or None,
            voice=voice,
        )
    if as_json:
        echo_json(result.to_dict())
        return
    console.print(f"  [green]✓[/] Audio ready (link valid for 24 hours):\n  {result.audio_url}")
