"""Forward-only migration runner for the record store schema.

Vector tables (vec_snippets_*) are NOT migration-managed — use ensure_vec_table().
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# Books reference folders only by identifier: "default" is a pseudo-folder
# with no row, so there is no foreign key. Snippets do not enforce their
# book either; orphaned snippets are valid.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS folders (
    id          TEXT PRIMARY KEY,
    owner_id    TEXT NOT NULL,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_folders_owner ON folders (owner_id, created_at);

CREATE TABLE IF NOT EXISTS books (
    id          TEXT PRIMARY KEY,
    owner_id    TEXT NOT NULL,
    title       TEXT NOT NULL,
    author      TEXT NOT NULL,
    isbn        TEXT,
    cover_url   TEXT,
    folder_id   TEXT NOT NULL DEFAULT 'default',
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_books_owner ON books (owner_id, created_at);

CREATE TABLE IF NOT EXISTS snippets (
    id          TEXT PRIMARY KEY,
    owner_id    TEXT NOT NULL,
    book_id     TEXT NOT NULL,
    text        TEXT NOT NULL,
    page_number INTEGER,
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snippets_owner ON snippets (owner_id, created_at);
CREATE INDEX IF NOT EXISTS idx_snippets_owner_book ON snippets (owner_id, book_id, created_at);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    Vector tables are NOT managed here — use ensure_vec_table() instead.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
