"""Per-embedding-model vector table management.

Each embedding model gets its own table so vectors of different
dimensions never mix. Rows are keyed by snippet id and carry the owner so
nearest-neighbour queries can be restricted to one owner before ranking.
Distances are computed with sqlite-vec's ``vec_distance_cosine``.
"""

from __future__ import annotations

import re
import sqlite3


def model_to_slug(model: str) -> str:
    """Convert a provider/model string to a valid table name suffix.

    Examples:
        "openai/text-embedding-3-small" -> "openai_text_embedding_3_small"
        "gemini/text-embedding-004"     -> "gemini_text_embedding_004"
    """
    return re.sub(r"[^a-z0-9]", "_", model.lower())


def vec_table_name(model_slug: str) -> str:
    """Return the full vector table name for a model slug."""
    return f"vec_snippets_{model_slug}"


def ensure_vec_table(conn: sqlite3.Connection, model_slug: str, dimensions: int) -> str:
    """Create vec_snippets_{model_slug} if it doesn't already exist.

    Args:
        conn: Active database connection (sqlite-vec must be loaded).
        model_slug: Sanitized model identifier (use model_to_slug() to generate).
        dimensions: Embedding vector dimensions (e.g. 1536 for text-embedding-3-small).

    Returns:
        The table name (vec_snippets_{model_slug}).
    """
    if not re.fullmatch(r"[a-z0-9_]+", model_slug):
        raise ValueError(
            f"Invalid model_slug '{model_slug}' — use model_to_slug() to sanitize."
        )
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    table = vec_table_name(model_slug)
    conn.executescript(
        f"""
        CREATE TABLE IF NOT EXISTS {table} (
            snippet_id    TEXT PRIMARY KEY,
            owner_id      TEXT NOT NULL,
            text_preview  TEXT NOT NULL DEFAULT '',
            embedding     BLOB NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_{table}_owner ON {table} (owner_id);
        """
    )
    conn.commit()
    return table
