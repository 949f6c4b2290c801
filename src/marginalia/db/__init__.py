"""Marginalia record store: SQLite connection, schema, and repository."""

from marginalia.db.connection import Database
from marginalia.db.migrations import MIGRATIONS, run_migrations
from marginalia.db.repository import MAX_BATCH_FETCH, Repository
from marginalia.db.schema import initialize
from marginalia.db.vectors import ensure_vec_table, model_to_slug, vec_table_name

__all__ = [
    "Database",
    "Repository",
    "MAX_BATCH_FETCH",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "ensure_vec_table",
    "model_to_slug",
    "vec_table_name",
]
