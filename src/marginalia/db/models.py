"""Domain models for the Marginalia record store."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

DEFAULT_FOLDER_ID = "default"


@dataclass
class Folder:
    id: str
    owner_id: str
    name: str
    created_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "createdAt": self.created_at,
        }


@dataclass
class Book:
    id: str
    owner_id: str
    title: str
    author: str
    created_at: str
    isbn: str | None = None
    cover_url: str | None = None
    folder_id: str = DEFAULT_FOLDER_ID

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "coverUrl": self.cover_url,
            "folderId": self.folder_id,
            "createdAt": self.created_at,
        }


@dataclass
class Snippet:
    id: str
    owner_id: str
    book_id: str
    text: str
    created_at: str
    page_number: int | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "ownerId": self.owner_id,
            "bookId": self.book_id,
            "text": self.text,
            "createdAt": self.created_at,
        }
        if self.page_number is not None:
            data["pageNumber"] = self.page_number
        return data


def new_id() -> str:
    """Return a fresh record identifier."""
    return str(uuid.uuid4())


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string (sorts chronologically)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
