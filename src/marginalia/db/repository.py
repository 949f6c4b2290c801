"""Repository pattern for the authoritative record store.

Single interface for the three owner-scoped collections: folders, books,
snippets. Lookups by id return the record whoever owns it; ownership is
compared by the services, which treat a foreign record exactly like a
missing one.
"""

from __future__ import annotations

import sqlite3
import threading

from marginalia.db.models import DEFAULT_FOLDER_ID, Book, Folder, Snippet

# Largest id batch get_snippets() accepts in one call.
MAX_BATCH_FETCH = 10

_FOLDER_COLUMNS = "id, owner_id, name, created_at"
_BOOK_COLUMNS = "id, owner_id, title, author, isbn, cover_url, folder_id, created_at"
_SNIPPET_COLUMNS = "id, owner_id, book_id, text, page_number, created_at"


class Repository:
    """Data access layer for folders, books, and snippets.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use. Calls are serialized with a lock so the
    repository can be shared with search worker threads.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see marginalia.db.schema.initialize).
        """
        self._conn = conn
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def add_folder(self, folder: Folder) -> None:
        """Insert a new folder record."""
        with self._lock:
            self._conn.execute(
                f"INSERT INTO folders ({_FOLDER_COLUMNS}) VALUES (?, ?, ?, ?)",
                (folder.id, folder.owner_id, folder.name, folder.created_at),
            )
            self._conn.commit()

    def get_folder(self, folder_id: str) -> Folder | None:
        """Return a folder by ID, or None if not found."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE id = ?", (folder_id,)
            ).fetchone()
        return _row_to_folder(row) if row else None

    def list_folders(self, owner_id: str) -> list[Folder]:
        """Return all folders of *owner_id*, newest first."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE owner_id = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (owner_id,),
            ).fetchall()
        return [_row_to_folder(r) for r in rows]

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def add_book(self, book: Book) -> None:
        """Insert a new book record."""
        with self._lock:
            self._conn.execute(
                f"INSERT INTO books ({_BOOK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    book.id,
                    book.owner_id,
                    book.title,
                    book.author,
                    book.isbn,
                    book.cover_url,
                    book.folder_id,
                    book.created_at,
                ),
            )
            self._conn.commit()

    def get_book(self, book_id: str) -> Book | None:
        """Return a book by ID, or None if not found."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)
            ).fetchone()
        return _row_to_book(row) if row else None

    def list_books(self, owner_id: str) -> list[Book]:
        """Return all books of *owner_id*, newest first."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_BOOK_COLUMNS} FROM books WHERE owner_id = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (owner_id,),
            ).fetchall()
        return [_row_to_book(r) for r in rows]

    # ------------------------------------------------------------------
    # Snippets
    # ------------------------------------------------------------------

    def add_snippet(self, snippet: Snippet) -> None:
        """Insert a new snippet record."""
        with self._lock:
            self._conn.execute(
                f"INSERT INTO snippets ({_SNIPPET_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    snippet.id,
                    snippet.owner_id,
                    snippet.book_id,
                    snippet.text,
                    snippet.page_number,
                    snippet.created_at,
                ),
            )
            self._conn.commit()

    def get_snippet(self, snippet_id: str) -> Snippet | None:
        """Return a snippet by ID, or None if not found."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_SNIPPET_COLUMNS} FROM snippets WHERE id = ?", (snippet_id,)
            ).fetchone()
        return _row_to_snippet(row) if row else None

    def get_snippets(self, snippet_ids: list[str]) -> list[Snippet]:
        """Batch-fetch snippets by ID, in the order of *snippet_ids*.

        Missing ids are skipped.

        Raises:
            ValueError: If more than MAX_BATCH_FETCH ids are requested.
        """
        if len(snippet_ids) > MAX_BATCH_FETCH:
            raise ValueError(
                f"get_snippets() accepts at most {MAX_BATCH_FETCH} ids, got {len(snippet_ids)}"
            )
        if not snippet_ids:
            return []
        placeholders = ",".join("?" * len(snippet_ids))
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_SNIPPET_COLUMNS} FROM snippets WHERE id IN ({placeholders})",
                snippet_ids,
            ).fetchall()
        by_id = {r["id"]: _row_to_snippet(r) for r in rows}
        return [by_id[i] for i in dict.fromkeys(snippet_ids) if i in by_id]

    def list_snippets(
        self,
        owner_id: str,
        book_id: str | None = None,
        limit: int | None = None,
    ) -> list[Snippet]:
        """Return snippets of *owner_id*, newest first.

        Args:
            owner_id: Owner whose snippets to list.
            book_id: Only snippets of this book when given.
            limit: Maximum number of rows (None = all).
        """
        sql = f"SELECT {_SNIPPET_COLUMNS} FROM snippets WHERE owner_id = ?"
        params: list = [owner_id]
        if book_id:
            sql += " AND book_id = ?"
            params.append(book_id)
        sql += " ORDER BY created_at DESC, rowid DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [_row_to_snippet(r) for r in rows]

    def update_snippet_text(self, snippet_id: str, text: str) -> None:
        """Replace the text of a snippet (last write wins)."""
        with self._lock:
            self._conn.execute(
                "UPDATE snippets SET text = ? WHERE id = ?", (text, snippet_id)
            )
            self._conn.commit()

    def delete_snippet(self, snippet_id: str) -> bool:
        """Delete a snippet by ID. Returns True if a row was removed."""
        with self._lock:
            cur = self._conn.execute("DELETE FROM snippets WHERE id = ?", (snippet_id,))
            self._conn.commit()
        return cur.rowcount > 0


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        created_at=row["created_at"],
    )


def _row_to_book(row: sqlite3.Row) -> Book:
    return Book(
        id=row["id"],
        owner_id=row["owner_id"],
        title=row["title"],
        author=row["author"],
        isbn=row["isbn"],
        cover_url=row["cover_url"],
        folder_id=row["folder_id"] or DEFAULT_FOLDER_ID,
        created_at=row["created_at"],
    )


def _row_to_snippet(row: sqlite3.Row) -> Snippet:
    return Snippet(
        id=row["id"],
        owner_id=row["owner_id"],
        book_id=row["book_id"],
        text=row["text"],
        page_number=row["page_number"],
        created_at=row["created_at"],
    )
