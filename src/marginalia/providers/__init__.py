"""Collaborator interfaces and their LiteLLM / sqlite-vec / filesystem implementations."""

from marginalia.providers.base import (
    BlobStore,
    BookMetadata,
    BookMetadataLookup,
    Completer,
    Embedder,
    SpeechSynthesizer,
    TextExtractor,
    VectorIndex,
    VectorMatch,
)

__all__ = [
    "BlobStore",
    "BookMetadata",
    "BookMetadataLookup",
    "Completer",
    "Embedder",
    "SpeechSynthesizer",
    "TextExtractor",
    "VectorIndex",
    "VectorMatch",
]
