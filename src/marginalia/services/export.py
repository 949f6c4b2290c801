"""Render snippets as quotation text for note-taking tools."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from marginalia.db.models import Book, Snippet
from marginalia.errors import ValidationError
from marginalia.services.books import BookService
from marginalia.services.snippets import SnippetService

DIALECTS = ("markdown", "obsidian", "notion")
EMPTY_EXPORT = "(No snippets to export)"


@dataclass
class ExportResult:
    content: str
    format: str

    def to_dict(self) -> dict:
        return {"content": self.content, "format": self.format}


def format_snippets(
    snippets: Iterable[Snippet],
    books: Mapping[str, Book],
    dialect: str,
) -> str:
    """Format *snippets* as quotes attributed to their books.

    Snippets whose book is not in *books* are attributed to the raw book id.

    Raises:
        ValidationError: If *dialect* is not one of DIALECTS.
    """
    if dialect not in DIALECTS:
        raise ValidationError(
            f"Unknown export format '{dialect}'. Choose one of: {', '.join(DIALECTS)}"
        )

    lines: list[str] = []
    for snippet in snippets:
        book = books.get(snippet.book_id)
        source = f"{book.title} — {book.author}" if book else snippet.book_id
        page = f" (p. {snippet.page_number})" if snippet.page_number is not None else ""
        if dialect == "notion":
            lines.append(f'"{snippet.text}" — {source}{page}')
        else:
            lines.append(f"> {snippet.text}")
            lines.append(f"> — *{source}{page}*")
        lines.append("")
    return "\n".join(lines).strip() or EMPTY_EXPORT


class ExportService:
    """Export an owner's snippets, newest first."""

    def __init__(self, snippets: SnippetService, books: BookService) -> None:
        self._snippets = snippets
        self._books = books

    def export(
        self,
        owner_id: str,
        dialect: str = "markdown",
        book_id: str | None = None,
    ) -> ExportResult:
        if dialect not in DIALECTS:
            raise ValidationError(
                f"Unknown export format '{dialect}'. Choose one of: {', '.join(DIALECTS)}"
            )
        snippets = self._snippets.list_by_owner(owner_id, book_id=book_id)
        books: dict[str, Book] = {}
        for bid in dict.fromkeys(s.book_id for s in snippets):
            book = self._books.get(owner_id, bid)
            if book is not None:
                books[bid] = book
        return ExportResult(content=format_snippets(snippets, books, dialect), format=dialect)
