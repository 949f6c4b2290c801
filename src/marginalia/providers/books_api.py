"""Google Books metadata lookup (title, author, ISBN, cover art)."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request

from marginalia.errors import CollaboratorError
from marginalia.providers.base import BookMetadata, BookMetadataLookup

logger = logging.getLogger(__name__)

_API_URL = "https://www.googleapis.com/books/v1/volumes"
_USER_AGENT = "marginalia/0.1 (+book metadata lookup)"
_TIMEOUT_S = 10
_ISBN_TYPES = ("ISBN_13", "ISBN_10")


class GoogleBooksLookup(BookMetadataLookup):
    """Query the public Google Books volumes API.

    ISBN lookups take precedence; otherwise title and author are combined
    into one free-text query. Only the first volume is used.
    """

    def __init__(self, api_url: str = _API_URL, timeout: float = _TIMEOUT_S) -> None:
        self.api_url = api_url
        self.timeout = timeout

    def lookup(
        self,
        isbn: str | None = None,
        title: str | None = None,
        author: str | None = None,
    ) -> BookMetadata | None:
        if isbn:
            return self._first_volume(f"isbn:{isbn.strip()}")
        query = " ".join(part.strip() for part in (title, author) if part and part.strip())
        if query:
            return self._first_volume(query, max_results=1)
        return None

    def _first_volume(self, query: str, max_results: int | None = None) -> BookMetadata | None:
        params = {"q": query}
        if max_results is not None:
            params["maxResults"] = str(max_results)
        url = f"{self.api_url}?{urllib.parse.urlencode(params)}"
        request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        logger.debug("Book lookup: %s", url)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                payload = json.loads(response.read().decode("utf-8"))
        except (urllib.error.URLError, TimeoutError, ValueError) as exc:
            raise CollaboratorError(f"Book lookup failed for '{query}': {exc}") from exc

        items = payload.get("items") or []
        volume = items[0].get("volumeInfo") if items else None
        if not volume:
            return None
        return volume_to_metadata(volume)


def volume_to_metadata(volume: dict) -> BookMetadata:
    """Map a Google Books ``volumeInfo`` object to BookMetadata."""
    authors = volume.get("authors")
    author = ", ".join(authors) if isinstance(authors, list) and authors else "Unknown"
    thumbnail = (volume.get("imageLinks") or {}).get("thumbnail")
    cover_url = thumbnail.replace("http://", "https://", 1) if thumbnail else None
    isbn = next(
        (
            ident.get("identifier")
            for ident in volume.get("industryIdentifiers") or []
            if ident.get("type") in _ISBN_TYPES
        ),
        None,
    )
    return BookMetadata(
        title=volume.get("title") or "Unknown",
        author=author,
        isbn=isbn,
        cover_url=cover_url,
    )
