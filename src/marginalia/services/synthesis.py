"""Cross-book synthesis: executive summary and cognitive connections.

Builds one prompt from up to a handful of the owner's snippets, asks the
completion model for JSON, and extracts it leniently. Malformed model output
degrades to placeholder fields; transport failures from the completer
propagate as CollaboratorError.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from marginalia.db.models import Snippet
from marginalia.providers.base import Completer
from marginalia.services.books import BookService
from marginalia.services.snippets import SnippetService

logger = logging.getLogger(__name__)

NO_SNIPPETS_SUMMARY = ["No snippets available to summarize."]
UNPARSABLE_SUMMARY = ["Unable to generate summary."]
CONTEXT_SEPARATOR = "\n\n---\n\n"

_SUMMARY_PROMPT = """\
You are a reading companion's synthesis engine. The reader has captured the \
following snippets from their physical books. Provide:

1. **3-Point Executive Summary**: Three bullet points synthesizing the key themes \
of the reader's captured content. Focus on what resonated with them based on \
what they chose to save.

2. **Cognitive Connections**: For each snippet, identify whether it relates to a \
snippet from a different book. If no clear cross-book connection exists, omit it.

Reader's captured snippets:
---
{context}
---

Respond in JSON:
{{
  "executiveSummary": ["point1", "point2", "point3"],
  "cognitiveConnections": [
    {{ "snippet": "excerpt from snippet", "relatedBook": "Book Title", "relatedQuote": "excerpt" }}
  ]
}}"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class CognitiveConnection:
    snippet: str
    related_book: str
    related_quote: str

    def to_dict(self) -> dict:
        return {
            "snippet": self.snippet,
            "relatedBook": self.related_book,
            "relatedQuote": self.related_quote,
        }


@dataclass
class SummaryResult:
    """Model-generated synthesis; returned to the caller, never stored."""

    executive_summary: list[str] = field(default_factory=list)
    cognitive_connections: list[CognitiveConnection] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "executiveSummary": list(self.executive_summary),
            "cognitiveConnections": [c.to_dict() for c in self.cognitive_connections],
        }


def parse_summary_response(text: str) -> dict:
    """Extract the JSON object embedded in a model reply.

    Takes everything from the first "{" to the last "}" and parses it.
    Returns {} when there is no such span, it is not valid JSON, or it is
    not an object. Never raises.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return {}
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def summary_from_dict(data: dict) -> SummaryResult:
    """Coerce a parsed reply into a SummaryResult, tolerating missing or odd fields."""
    summary = data.get("executiveSummary")
    if isinstance(summary, list):
        points = [str(p) for p in summary]
    else:
        points = list(UNPARSABLE_SUMMARY)

    connections: list[CognitiveConnection] = []
    raw = data.get("cognitiveConnections")
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            connections.append(
                CognitiveConnection(
                    snippet=str(item.get("snippet") or ""),
                    related_book=str(item.get("relatedBook") or ""),
                    related_quote=str(item.get("relatedQuote") or ""),
                )
            )
    return SummaryResult(executive_summary=points, cognitive_connections=connections)


class SynthesisEngine:
    """Summarize an owner's snippets and connect ideas across books.

    Args:
        snippets: Snippet reads (ownership-checked).
        books: Resolves book ids to titles for the prompt.
        completer: Generative model.
    """

    def __init__(self, snippets: SnippetService, books: BookService, completer: Completer) -> None:
        self._snippets = snippets
        self._books = books
        self._completer = completer

    def summarize(
        self,
        owner_id: str,
        book_id: str | None = None,
        snippet_ids: list[str] | None = None,
    ) -> SummaryResult:
        """Synthesize the selected snippets.

        Args:
            owner_id: Owner whose snippets are used.
            book_id: Restrict to one book (also applied to *snippet_ids*).
            snippet_ids: Explicit selection; only the first 10 are used.

        Raises:
            CollaboratorError: If the completion call itself fails.
        """
        snippets = self.select(owner_id, book_id, snippet_ids)
        if not snippets:
            return SummaryResult(executive_summary=list(NO_SNIPPETS_SUMMARY))

        prompt = _SUMMARY_PROMPT.format(context=self.build_context(owner_id, snippets))
        reply = self._completer.complete(prompt)
        data = parse_summary_response(reply)
        if not data:
            logger.warning("Could not parse synthesis reply (%d chars)", len(reply or ""))
        return summary_from_dict(data)

    def select(
        self,
        owner_id: str,
        book_id: str | None = None,
        snippet_ids: list[str] | None = None,
    ) -> list[Snippet]:
        if snippet_ids:
            snippets = self._snippets.get_many(owner_id, snippet_ids)
        else:
            snippets = self._snippets.list_by_owner(owner_id, book_id=book_id)
        if book_id:
            snippets = [s for s in snippets if s.book_id == book_id]
        return snippets

    def build_context(self, owner_id: str, snippets: list[Snippet]) -> str:
        """Render snippets as "[Title by Author]\\ntext" blocks."""
        sources: dict[str, str] = {}
        for book_id in dict.fromkeys(s.book_id for s in snippets):
            book = self._books.get(owner_id, book_id)
            sources[book_id] = f"{book.title} by {book.author}" if book else book_id
        return CONTEXT_SEPARATOR.join(f"[{sources[s.book_id]}]\n{s.text}" for s in snippets)
