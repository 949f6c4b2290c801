"""Semantic vector index on sqlite-vec.

The index is a derived mirror of the snippets table: it may lag behind or
hold stale entries, and search always re-resolves its hits against the
record store. It owns its own connection so writes from the background
indexer never share a transaction with record-store writes.
"""

from __future__ import annotations

import logging
import sqlite3
import threading

import sqlite_vec

from marginalia.db.vectors import ensure_vec_table, model_to_slug
from marginalia.providers.base import VectorIndex, VectorMatch

logger = logging.getLogger(__name__)

# Longest text preview stored alongside a vector.
TEXT_PREVIEW_CHARS = 1000


class SqliteVectorIndex(VectorIndex):
    """Owner-filtered cosine nearest-neighbour search over one vec_snippets_* table.

    Args:
        conn: Open connection with sqlite-vec loaded (see Database.connect()).
        embedding_model: Embedding model the stored vectors come from; selects
            the table.
        dimensions: Vector length every upsert and query must match.
    """

    def __init__(self, conn: sqlite3.Connection, embedding_model: str, dimensions: int) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        self.dimensions = dimensions
        self.table = ensure_vec_table(conn, model_to_slug(embedding_model), dimensions)

    def upsert(self, snippet_id: str, vector: list[float], metadata: dict) -> None:
        """Insert or replace the entry for *snippet_id*.

        A zero vector (degraded embedding) can never match a query, so it
        removes any previous entry instead of being stored.
        """
        self._check_dimensions(vector)
        if not any(vector):
            logger.debug("Zero vector for snippet %s; dropping its index entry", snippet_id)
            self.delete(snippet_id)
            return
        preview = str(metadata.get("text_preview", ""))[:TEXT_PREVIEW_CHARS]
        with self._lock:
            self._conn.execute(
                f"""
                INSERT INTO {self.table} (snippet_id, owner_id, text_preview, embedding)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(snippet_id) DO UPDATE SET
                    owner_id = excluded.owner_id,
                    text_preview = excluded.text_preview,
                    embedding = excluded.embedding
                """,
                (
                    snippet_id,
                    metadata["owner_id"],
                    preview,
                    sqlite_vec.serialize_float32(vector),
                ),
            )
            self._conn.commit()

    def delete(self, snippet_id: str) -> None:
        with self._lock:
            self._conn.execute(f"DELETE FROM {self.table} WHERE snippet_id = ?", (snippet_id,))
            self._conn.commit()

    def query(self, vector: list[float], top_k: int, owner_id: str) -> list[VectorMatch]:
        """Return up to *top_k* of *owner_id*'s entries, most similar first.

        Score is cosine similarity (1 - cosine distance). Entries whose
        distance is undefined (zero vectors from degraded embeddings) are
        skipped, and a zero query vector matches nothing.
        """
        self._check_dimensions(vector)
        if top_k < 1 or not any(vector):
            return []
        with self._lock:
            rows = self._conn.execute(
                f"""
                SELECT snippet_id, distance FROM (
                    SELECT snippet_id, vec_distance_cosine(embedding, ?) AS distance
                    FROM {self.table}
                    WHERE owner_id = ?
                )
                WHERE distance IS NOT NULL
                ORDER BY distance
                LIMIT ?
                """,
                (sqlite_vec.serialize_float32(vector), owner_id, top_k),
            ).fetchall()
        return [VectorMatch(id=r["snippet_id"], score=1.0 - r["distance"]) for r in rows]

    def preview(self, snippet_id: str) -> str | None:
        """Return the stored text preview for *snippet_id* (diagnostics only)."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT text_preview FROM {self.table} WHERE snippet_id = ?", (snippet_id,)
            ).fetchone()
        return row["text_preview"] if row else None

    def count(self, owner_id: str | None = None) -> int:
        """Return the number of stored entries (optionally for one owner)."""
        sql = f"SELECT COUNT(*) FROM {self.table}"
        params: tuple = ()
        if owner_id is not None:
            sql += " WHERE owner_id = ?"
            params = (owner_id,)
        with self._lock:
            return self._conn.execute(sql, params).fetchone()[0]

    def _check_dimensions(self, vector: list[float]) -> None:
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Vector has {len(vector)} dimensions, index '{self.table}' "
                f"expects {self.dimensions}"
            )


class NullVectorIndex(VectorIndex):
    """Stand-in used when the semantic index is disabled.

    Writes are dropped and queries return nothing, so hybrid search still
    succeeds with zero semantic recall.
    """

    def upsert(self, snippet_id: str, vector: list[float], metadata: dict) -> None:
        logger.debug("Vector index disabled; not indexing snippet %s", snippet_id)

    def delete(self, snippet_id: str) -> None:
        logger.debug("Vector index disabled; nothing to delete for %s", snippet_id)

    def query(self, vector: list[float], top_k: int, owner_id: str) -> list[VectorMatch]:
        return []
