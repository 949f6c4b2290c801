"""marginalia search and reindex commands.

Usage:
  marginalia search "stoic virtue" [--limit 20] [--timeout 5]
  marginalia reindex

search prints the keyword and semantic lists separately: their scores are on
different scales and are never merged.
"""

from __future__ import annotations

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
)
from marginalia.cli.errors import warn_degraded_embeddings
from marginalia.providers.llm import has_api_key
from marginalia.services.search import RankedHit


def _hits_table(title: str, hits: list[RankedHit], score_fmt: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Book", style="dim")
    table.add_column("Text")
    for hit in hits:
        table.add_row(format(hit.score, score_fmt), hit.id, hit.book_id, preview(hit.text))
    return table


def search_cmd(
    query: Annotated[str, typer.Argument(help="Words or a phrase to search for.")],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", help="Results per list (1-100, default 20)."),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Give up after this many seconds."),
    ] = None,
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Search snippets by keyword and by meaning."""
    with open_library(db) as lib:
        results = lib.search.search(owner, query, limit=limit, timeout=timeout)
    if as_json:
        echo_json(results.to_dict())
        return

    if not results.keyword and not results.semantic:
        console.print(f"[yellow]No snippets match[/] '{query}'.")
        return
    console.print(_hits_table("Keyword matches", results.keyword, "d"))
    console.print(_hits_table("Semantic matches", results.semantic, ".3f"))


def reindex_cmd(
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
) -> None:
    """Rebuild the semantic index entries of every snippet."""
    with open_library(db) as lib:
        model = lib.config.embedding.model
        if lib.config.vector.enabled and not has_api_key(model):
            console.print(warn_degraded_embeddings(model))
        count = lib.snippets.reindex(owner)
        lib.indexer.wait()
        failures = lib.indexer.failures
    console.print(f"  [green]✓[/] Reindexed {count - failures}/{count} snippets")
    if failures:
        console.print(f"  [yellow]⚠[/] {failures} failed; see marginalia-ops.log")
