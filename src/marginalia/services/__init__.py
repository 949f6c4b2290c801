"""Application services: ingestion, retrieval, synthesis, export, and narration."""

from marginalia.services.books import BookService
from marginalia.services.export import ExportResult, ExportService, format_snippets
from marginalia.services.folders import FolderService
from marginalia.services.indexer import SnippetIndexer
from marginalia.services.narration import NarrationResult, NarrationService
from marginalia.services.search import HybridSearch, RankedHit, SearchResults
from marginalia.services.snippets import SnippetService
from marginalia.services.synthesis import SummaryResult, SynthesisEngine, parse_summary_response

__all__ = [
    "BookService",
    "ExportResult",
    "ExportService",
    "FolderService",
    "HybridSearch",
    "NarrationResult",
    "NarrationService",
    "RankedHit",
    "SearchResults",
    "SnippetIndexer",
    "SnippetService",
    "SummaryResult",
    "SynthesisEngine",
    "format_snippets",
    "parse_summary_response",
]
