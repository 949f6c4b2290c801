"""Collaborator interfaces consumed by the Marginalia services.

Each external collaborator is reached through one narrow abstract class so
services can be wired with the LiteLLM/sqlite-vec implementations in
production and with in-memory fakes in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class VectorMatch:
    """One nearest-neighbour hit: snippet id and similarity (higher = closer)."""

    id: str
    score: float


@dataclass
class BookMetadata:
    """Bibliographic record returned by a metadata lookup."""

    title: str
    author: str
    isbn: str | None = None
    cover_url: str | None = None


class TextExtractor(ABC):
    """Optical character recognition of an image."""

    @abstractmethod
    def extract_text(self, image_bytes: bytes) -> str:
        """Return the text found in *image_bytes*.

        Returns an empty string when the image holds no text; "nothing
        found" is never an exception.
        """


class Embedder(ABC):
    """Dense text embeddings of a fixed dimension."""

    dimensions: int

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Return a vector of length ``dimensions`` for *text*."""


class VectorIndex(ABC):
    """Derived semantic index keyed by snippet id."""

    @abstractmethod
    def upsert(self, snippet_id: str, vector: list[float], metadata: dict) -> None:
        """Create or replace the entry for *snippet_id*.

        *metadata* carries ``owner_id`` and ``text_preview``.
        """

    @abstractmethod
    def delete(self, snippet_id: str) -> None:
        """Remove the entry for *snippet_id* (no-op when absent)."""

    @abstractmethod
    def query(self, vector: list[float], top_k: int, owner_id: str) -> list[VectorMatch]:
        """Return up to *top_k* entries of *owner_id* closest to *vector*, best first."""


class Completer(ABC):
    """Free-form generative text completion."""

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Return the model's reply to *prompt* (not guaranteed to be JSON)."""


class SpeechSynthesizer(ABC):
    """Text-to-speech."""

    @abstractmethod
    def synthesize(self, text: str, voice: str) -> bytes:
        """Return MP3 audio of *text* spoken with the named narrator *voice*."""


class BlobStore(ABC):
    """Binary object storage handing out time-limited signed URLs."""

    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str, expires_in: int) -> str:
        """Store *data* at *path*; return a URL valid for *expires_in* seconds."""


class BookMetadataLookup(ABC):
    """Third-party bibliographic lookup."""

    @abstractmethod
    def lookup(
        self,
        isbn: str | None = None,
        title: str | None = None,
        author: str | None = None,
    ) -> BookMetadata | None:
        """Return metadata of the best match, or None if nothing matches."""
