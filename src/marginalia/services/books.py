"""Book records: manual entry, metadata lookup, and cover-photo capture.

Every book belongs to exactly one folder id. A missing id and the literal
"default" both mean the default pseudo-folder, which has no Folder row.
"""

from __future__ import annotations

import logging
import time

from marginalia.db.models import DEFAULT_FOLDER_ID, Book, new_id, utc_now
from marginalia.db.repository import Repository
from marginalia.errors import ValidationError
from marginalia.providers.base import BlobStore, BookMetadata, BookMetadataLookup, TextExtractor

logger = logging.getLogger(__name__)

COVER_URL_TTL_S = 7 * 24 * 60 * 60
UNKNOWN_TITLE = "Unknown Book"
UNKNOWN_AUTHOR = "Unknown Author"
_COVER_QUERY_CHARS = 120


def normalize_folder_id(folder_id: str | None) -> str:
    """Map an absent/blank folder id or "default" to the default pseudo-folder."""
    if not folder_id or not folder_id.strip():
        return DEFAULT_FOLDER_ID
    return folder_id.strip()


class BookService:
    """Create and read the owner's books.

    Args:
        repo: Authoritative record store.
        lookup: Bibliographic metadata source.
        blobs: Storage for uploaded cover photos.
        ocr: Reads the title off a cover photo.
    """

    def __init__(
        self,
        repo: Repository,
        lookup: BookMetadataLookup,
        blobs: BlobStore,
        ocr: TextExtractor,
    ) -> None:
        self._repo = repo
        self._lookup = lookup
        self._blobs = blobs
        self._ocr = ocr

    def create(
        self,
        owner_id: str,
        title: str,
        author: str,
        isbn: str | None = None,
        cover_url: str | None = None,
        folder_id: str | None = None,
    ) -> Book:
        """Persist a book.

        Raises:
            ValidationError: If *title* or *author* is blank.
        """
        if not title or not title.strip():
            raise ValidationError("title is required")
        if not author or not author.strip():
            raise ValidationError("author is required")
        book = Book(
            id=new_id(),
            owner_id=owner_id,
            title=title.strip(),
            author=author.strip(),
            isbn=isbn or None,
            cover_url=cover_url or None,
            folder_id=normalize_folder_id(folder_id),
            created_at=utc_now(),
        )
        self._repo.add_book(book)
        return book

    def get(self, owner_id: str, book_id: str) -> Book | None:
        """Return the book, or None if absent or owned by someone else."""
        book = self._repo.get_book(book_id)
        if book is None or book.owner_id != owner_id:
            return None
        return book

    def list_by_owner(self, owner_id: str, folder_id: str | None = None) -> list[Book]:
        """Return the owner's books, newest first.

        Args:
            folder_id: None → all books; "default" → books in the default
                pseudo-folder; anything else → books in that folder.
        """
        books = self._repo.list_books(owner_id)
        if folder_id is None:
            return books
        wanted = normalize_folder_id(folder_id)
        return [b for b in books if normalize_folder_id(b.folder_id) == wanted]

    def lookup_and_create(
        self,
        owner_id: str,
        isbn: str | None = None,
        title: str | None = None,
        author: str | None = None,
        folder_id: str | None = None,
    ) -> Book | None:
        """Look the book up by ISBN (or title/author) and store the match.

        Returns:
            The new book, or None if the lookup found nothing.

        Raises:
            ValidationError: If no ISBN, title, or author is given.
        """
        if not any(v and v.strip() for v in (isbn, title, author)):
            raise ValidationError("isbn, title, or author is required")
        metadata = self._lookup.lookup(isbn=isbn, title=title, author=author)
        if metadata is None:
            return None
        return self._create_from_metadata(owner_id, metadata, folder_id)

    def create_from_cover(
        self,
        owner_id: str,
        image_bytes: bytes,
        folder_id: str | None = None,
    ) -> Book:
        """Store a cover photo and create a book from what can be read off it.

        The cover is uploaded first; its signed URL becomes the cover URL
        unless the metadata lookup supplies one. When the cover text finds
        no match the book is stored as "Unknown Book" by "Unknown Author".

        Raises:
            ValidationError: If *image_bytes* is empty.
        """
        if not image_bytes:
            raise ValidationError("cover image is required")
        path = f"covers/{owner_id}/{int(time.time() * 1000)}.jpg"
        signed_url = self._blobs.put(path, image_bytes, "image/jpeg", COVER_URL_TTL_S)

        metadata = self._metadata_from_cover(image_bytes)
        if metadata is None:
            metadata = BookMetadata(title=UNKNOWN_TITLE, author=UNKNOWN_AUTHOR)
        if not metadata.cover_url:
            metadata.cover_url = signed_url
        return self._create_from_metadata(owner_id, metadata, folder_id)

    def _metadata_from_cover(self, image_bytes: bytes) -> BookMetadata | None:
        text = self._ocr.extract_text(image_bytes)
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if not lines:
            logger.info("No text found on cover; storing as unknown book")
            return None
        query = " ".join(lines[:2])[:_COVER_QUERY_CHARS]
        return self._lookup.lookup(title=query)

    def _create_from_metadata(
        self, owner_id: str, metadata: BookMetadata, folder_id: str | None
    ) -> Book:
        return self.create(
            owner_id,
            title=metadata.title,
            author=metadata.author,
            isbn=metadata.isbn,
            cover_url=metadata.cover_url,
            folder_id=folder_id,
        )
