"""Hybrid retrieval: keyword scan and semantic vector search, run concurrently.

The two result lists are returned side by side and never fused. Keyword
scores are integer counts of matched query tokens; semantic scores are
cosine similarities. The scales are not comparable, so ordering across the
lists is left to the caller.

Keyword path:
  newest N snippets of the owner → distinct lower-cased query tokens →
  score = number of tokens found as substrings → drop zeros → stable sort.

Semantic path:
  embed query → owner-filtered nearest neighbours → re-resolve every hit
  against the record store (the index's own text preview is never returned).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field

from marginalia.db.models import Snippet
from marginalia.db.repository import MAX_BATCH_FETCH, Repository
from marginalia.errors import SearchTimeoutError, ValidationError
from marginalia.providers.base import Embedder, VectorIndex, VectorMatch

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
KEYWORD_SCAN_LIMIT = 200


@dataclass
class RankedHit:
    """One search result: snippet id, current text, book, and list-local score."""

    id: str
    text: str
    book_id: str
    score: float

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "bookId": self.book_id, "score": self.score}


@dataclass
class SearchResults:
    """Both ranked lists for one query, each best-first."""

    keyword: list[RankedHit] = field(default_factory=list)
    semantic: list[RankedHit] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "keyword": [h.to_dict() for h in self.keyword],
            "semantic": [h.to_dict() for h in self.semantic],
        }


def clamp_limit(limit: int | None, default: int = DEFAULT_LIMIT) -> int:
    """Return *limit* clamped to [1, MAX_LIMIT]; None means *default*."""
    if limit is None:
        limit = default
    return max(1, min(MAX_LIMIT, int(limit)))


def query_tokens(query: str) -> list[str]:
    """Lower-case *query*, split on whitespace, and drop repeated tokens."""
    return list(dict.fromkeys(query.lower().split()))


def keyword_score(text: str, tokens: list[str]) -> int:
    """Count how many of *tokens* occur anywhere in *text*, ignoring case."""
    lower = text.lower()
    return sum(1 for token in tokens if token in lower)


def rank_keyword(snippets: list[Snippet], query: str, limit: int) -> list[RankedHit]:
    """Score *snippets* against *query*; ties keep the input order."""
    tokens = query_tokens(query)
    hits = [
        RankedHit(id=s.id, text=s.text, book_id=s.book_id, score=keyword_score(s.text, tokens))
        for s in snippets
    ]
    hits = [h for h in hits if h.score > 0]
    hits.sort(key=lambda h: h.score, reverse=True)
    return hits[:limit]


class HybridSearch:
    """Run keyword and semantic search for one owner and return both lists.

    Args:
        repo: Authoritative record store.
        embedder: Embeds the query for the semantic path.
        index: Vector index (a NullVectorIndex when disabled).
        default_limit: Per-list result count when the caller gives none.
        scan_limit: How many recent snippets the keyword path examines.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: Embedder,
        index: VectorIndex,
        default_limit: int = DEFAULT_LIMIT,
        scan_limit: int = KEYWORD_SCAN_LIMIT,
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._index = index
        self.default_limit = default_limit
        self.scan_limit = scan_limit
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="marginalia-search")

    def search(
        self,
        owner_id: str,
        query: str,
        limit: int | None = None,
        timeout: float | None = None,
    ) -> SearchResults:
        """Return keyword and semantic hits for *query*, at most *limit* each.

        Args:
            owner_id: Owner whose snippets are searched.
            query: Free text; must not be blank.
            limit: Per-list maximum, clamped to [1, 100].
            timeout: Seconds to wait for both paths; None waits indefinitely.

        Raises:
            ValidationError: If *query* is blank.
            SearchTimeoutError: If *timeout* elapses before both paths finish.
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Query is required")
        limit = clamp_limit(limit, self.default_limit)

        keyword_future = self._executor.submit(self.keyword_search, owner_id, query, limit)
        semantic_future = self._executor.submit(self.semantic_search, owner_id, query, limit)
        # One deadline covers both paths.
        _, not_done = wait_futures([keyword_future, semantic_future], timeout=timeout)
        if not_done:
            for future in not_done:
                future.cancel()
            raise SearchTimeoutError(timeout)
        return SearchResults(keyword=keyword_future.result(), semantic=semantic_future.result())

    def keyword_search(self, owner_id: str, query: str, limit: int) -> list[RankedHit]:
        """Substring-match scan over the owner's most recent snippets."""
        recent = self._repo.list_snippets(owner_id, limit=self.scan_limit)
        return rank_keyword(recent, query, limit)

    def semantic_search(self, owner_id: str, query: str, limit: int) -> list[RankedHit]:
        """Nearest-neighbour search, resolved against the record store.

        Embedding or index failures yield an empty list; record-store
        failures propagate.
        """
        try:
            vector = self._embedder.embed(query)
            matches = self._index.query(vector, limit, owner_id)
        except Exception:
            logger.warning("Semantic search unavailable; returning keyword results only", exc_info=True)
            return []
        return self._resolve(owner_id, matches)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _resolve(self, owner_id: str, matches: list[VectorMatch]) -> list[RankedHit]:
        """Replace index hits with current snippet data, dropping stale or foreign ids."""
        current: dict[str, Snippet] = {}
        ids = [m.id for m in matches]
        for start in range(0, len(ids), MAX_BATCH_FETCH):
            for snippet in self._repo.get_snippets(ids[start:start + MAX_BATCH_FETCH]):
                if snippet.owner_id == owner_id:
                    current[snippet.id] = snippet

        hits: list[RankedHit] = []
        for match in matches:
            snippet = current.get(match.id)
            if snippet is None:
                logger.debug("Dropping stale vector hit %s", match.id)
                continue
            hits.append(
                RankedHit(id=snippet.id, text=snippet.text, book_id=snippet.book_id, score=match.score)
            )
        return hits
