"""Composition root: builds every collaborator once and wires the services.

Collaborators are constructed here and passed in explicitly; services never
reach for globals. Tests substitute fakes through the keyword overrides of
``Marginalia.from_config``.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from marginalia.config import MarginaliaConfig
from marginalia.db.connection import Database
from marginalia.db.repository import Repository
from marginalia.db.schema import initialize
from marginalia.providers.base import (
    BlobStore,
    BookMetadataLookup,
    Completer,
    Embedder,
    SpeechSynthesizer,
    TextExtractor,
    VectorIndex,
)
from marginalia.providers.blob import LocalBlobStore
from marginalia.providers.books_api import GoogleBooksLookup
from marginalia.providers.llm import (
    LiteLLMCompleter,
    LiteLLMEmbedder,
    LiteLLMSpeechSynthesizer,
    VisionTextExtractor,
)
from marginalia.providers.vector_index import NullVectorIndex, SqliteVectorIndex
from marginalia.services.books import BookService
from marginalia.services.export import ExportService
from marginalia.services.folders import FolderService
from marginalia.services.indexer import SnippetIndexer
from marginalia.services.narration import NarrationService
from marginalia.services.search import HybridSearch
from marginalia.services.snippets import SnippetService
from marginalia.services.synthesis import SynthesisEngine

logger = logging.getLogger(__name__)


class Marginalia:
    """All services of one library database, sharing one set of collaborators."""

    def __init__(
        self,
        repo: Repository,
        indexer: SnippetIndexer,
        folders: FolderService,
        books: BookService,
        snippets: SnippetService,
        search: HybridSearch,
        synthesis: SynthesisEngine,
        exporter: ExportService,
        narration: NarrationService,
        connections: list[sqlite3.Connection] | None = None,
        config: MarginaliaConfig | None = None,
    ) -> None:
        self.config = config or MarginaliaConfig()
        self.repo = repo
        self.indexer = indexer
        self.folders = folders
        self.books = books
        self.snippets = snippets
        self.search = search
        self.synthesis = synthesis
        self.exporter = exporter
        self.narration = narration
        self._connections = connections or []

    @classmethod
    def from_config(
        cls,
        cfg: MarginaliaConfig,
        db_path: Path | str | None = None,
        *,
        embedder: Embedder | None = None,
        index: VectorIndex | None = None,
        ocr: TextExtractor | None = None,
        completer: Completer | None = None,
        speech: SpeechSynthesizer | None = None,
        blobs: BlobStore | None = None,
        lookup: BookMetadataLookup | None = None,
    ) -> Marginalia:
        """Open the database at *db_path* (default: cfg.storage.db_path) and wire services.

        The record store and the vector index get separate connections.
        With ``vector.enabled`` false the index is a NullVectorIndex.
        """
        database = Database(db_path or cfg.storage.db_path)
        record_conn = database.connect()
        initialize(record_conn)
        connections = [record_conn]

        embedder = embedder or LiteLLMEmbedder(cfg.embedding.model, cfg.embedding.dimensions)
        if index is None:
            if cfg.vector.enabled:
                index_conn = database.connect()
                connections.append(index_conn)
                index = SqliteVectorIndex(index_conn, cfg.embedding.model, cfg.embedding.dimensions)
            else:
                logger.info("Vector index disabled; semantic search will return no results")
                index = NullVectorIndex()
        ocr = ocr or VisionTextExtractor(cfg.ocr.model)
        completer = completer or LiteLLMCompleter(
            cfg.generation.model, max_tokens=cfg.generation.max_tokens
        )
        speech = speech or LiteLLMSpeechSynthesizer(cfg.speech.model)
        blobs = blobs or LocalBlobStore(cfg.storage.blob_dir, cfg.storage.blob_base_url)
        lookup = lookup or GoogleBooksLookup()

        repo = Repository(record_conn)
        indexer = SnippetIndexer(embedder, index, max_workers=cfg.indexing.workers)
        folders = FolderService(repo)
        books = BookService(repo, lookup, blobs, ocr)
        snippets = SnippetService(repo, ocr, indexer)
        search = HybridSearch(
            repo,
            embedder,
            index,
            default_limit=cfg.search.default_limit,
            scan_limit=cfg.search.scan_limit,
        )
        synthesis = SynthesisEngine(snippets, books, completer)
        return cls(
            repo=repo,
            indexer=indexer,
            folders=folders,
            books=books,
            snippets=snippets,
            search=search,
            synthesis=synthesis,
            exporter=ExportService(snippets, books),
            narration=NarrationService(
                snippets, synthesis, speech, blobs, default_voice=cfg.speech.voice
            ),
            connections=connections,
            config=cfg,
        )

    def close(self) -> None:
        """Drain background indexing, then close every connection."""
        self.indexer.close()
        self.search.close()
        for conn in self._connections:
            conn.close()
        self._connections = []

    def __enter__(self) -> Marginalia:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
