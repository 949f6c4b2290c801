"""Snippet ingestion pipeline.

Write path: acquire text (literal or OCR) → synchronous write to the record
store → background vector indexing. The record store is authoritative: its
failures propagate to the caller. Indexing runs on the SnippetIndexer and
never delays or fails the call that triggered it.
"""

from __future__ import annotations

import logging

from marginalia.db.models import Snippet, new_id, utc_now
from marginalia.db.repository import MAX_BATCH_FETCH, Repository
from marginalia.errors import ValidationError
from marginalia.providers.base import TextExtractor
from marginalia.services.indexer import SnippetIndexer

logger = logging.getLogger(__name__)


class SnippetService:
    """Create, read, update, and delete snippets for one owner at a time.

    Args:
        repo: Authoritative record store.
        ocr: Reads text from snippet photos.
        indexer: Background writer for the vector index.
    """

    def __init__(self, repo: Repository, ocr: TextExtractor, indexer: SnippetIndexer) -> None:
        self._repo = repo
        self._ocr = ocr
        self._indexer = indexer

    def create(
        self,
        owner_id: str,
        book_id: str,
        text: str | None = None,
        image_bytes: bytes | None = None,
        page_number: int | None = None,
    ) -> Snippet:
        """Persist a snippet from literal *text* or from an *image_bytes* photo.

        Literal text wins when both are given and is stored unchanged.

        Raises:
            ValidationError: If *book_id* is missing, or neither input yields
                non-empty text (including OCR that finds nothing).
        """
        if not book_id:
            raise ValidationError("bookId is required")
        if not text and image_bytes:
            text = self._ocr.extract_text(image_bytes)
        if not text or not text.strip():
            raise ValidationError("Could not extract or receive text")

        snippet = Snippet(
            id=new_id(),
            owner_id=owner_id,
            book_id=book_id,
            text=text,
            page_number=page_number,
            created_at=utc_now(),
        )
        self._repo.add_snippet(snippet)
        self._indexer.schedule_upsert(owner_id, snippet.id, snippet.text)
        logger.info("Created snippet %s for book %s", snippet.id, book_id)
        return snippet

    def get(self, owner_id: str, snippet_id: str) -> Snippet | None:
        """Return the snippet, or None if absent or owned by someone else."""
        snippet = self._repo.get_snippet(snippet_id)
        if snippet is None or snippet.owner_id != owner_id:
            return None
        return snippet

    def get_many(self, owner_id: str, snippet_ids: list[str]) -> list[Snippet]:
        """Batch-fetch the owner's snippets.

        Only the first MAX_BATCH_FETCH ids are fetched; missing and foreign
        ids are dropped.
        """
        if not snippet_ids:
            return []
        if len(snippet_ids) > MAX_BATCH_FETCH:
            logger.info(
                "Fetching only the first %d of %d requested snippets",
                MAX_BATCH_FETCH,
                len(snippet_ids),
            )
        batch = self._repo.get_snippets(list(snippet_ids[:MAX_BATCH_FETCH]))
        return [s for s in batch if s.owner_id == owner_id]

    def list_by_owner(self, owner_id: str, book_id: str | None = None) -> list[Snippet]:
        """Return the owner's snippets (optionally for one book), newest first."""
        return self._repo.list_snippets(owner_id, book_id=book_id)

    def update(self, owner_id: str, snippet_id: str, text: str) -> Snippet | None:
        """Replace a snippet's text and re-index it.

        Not atomic: concurrent updates of the same id are last-write-wins.

        Returns:
            The updated snippet, or None if absent or owned by someone else.

        Raises:
            ValidationError: If *text* is empty.
        """
        if not text or not text.strip():
            raise ValidationError("text is required")
        existing = self.get(owner_id, snippet_id)
        if existing is None:
            return None
        self._repo.update_snippet_text(snippet_id, text)
        updated = self._repo.get_snippet(snippet_id) or existing
        updated.text = text
        self._indexer.schedule_upsert(owner_id, snippet_id, text)
        return updated

    def delete(self, owner_id: str, snippet_id: str) -> bool:
        """Delete a snippet and schedule removal of its vector entry.

        Returns:
            True if a snippet was deleted; False if it was absent or owned
            by someone else.
        """
        if self.get(owner_id, snippet_id) is None:
            return False
        self._repo.delete_snippet(snippet_id)
        self._indexer.schedule_delete(snippet_id)
        logger.info("Deleted snippet %s", snippet_id)
        return True

    def reindex(self, owner_id: str) -> int:
        """Re-derive the vector entries of all the owner's snippets in the background.

        Returns:
            Number of snippets scheduled.
        """
        snippets = self._repo.list_snippets(owner_id)
        for snippet in snippets:
            self._indexer.schedule_upsert(owner_id, snippet.id, snippet.text)
        return len(snippets)
