"""Narration: speak a summary or a set of snippets and publish the audio."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from marginalia.errors import ValidationError
from marginalia.providers.base import BlobStore, SpeechSynthesizer
from marginalia.providers.llm import DEFAULT_VOICE
from marginalia.services.snippets import SnippetService
from marginalia.services.synthesis import SynthesisEngine

logger = logging.getLogger(__name__)

AUDIO_URL_TTL_S = 24 * 60 * 60
# Input limit of the speech endpoint.
MAX_SPEECH_CHARS = 4096
SOURCES = ("summary", "snippets")


@dataclass
class NarrationResult:
    audio_url: str

    def to_dict(self) -> dict:
        return {"audioUrl": self.audio_url}


class NarrationService:
    """Turn text, a summary, or snippets into an MP3 behind a signed URL.

    Args:
        snippets: Snippet reads for the "snippets" source.
        synthesis: Produces the summary for the "summary" source.
        speech: Text-to-speech collaborator.
        blobs: Where the audio is published.
    """

    def __init__(
        self,
        snippets: SnippetService,
        synthesis: SynthesisEngine,
        speech: SpeechSynthesizer,
        blobs: BlobStore,
        default_voice: str = DEFAULT_VOICE,
    ) -> None:
        self._snippets = snippets
        self._synthesis = synthesis
        self._speech = speech
        self._blobs = blobs
        self.default_voice = default_voice

    def narrate(
        self,
        owner_id: str,
        text: str | None = None,
        source: str | None = None,
        book_id: str | None = None,
        snippet_ids: list[str] | None = None,
        voice: str | None = None,
    ) -> NarrationResult:
        """Synthesize speech and return a 24-hour signed URL to the MP3.

        Explicit *text* wins. Otherwise *source* "summary" narrates a fresh
        summary; anything else narrates the selected snippets (or all of the
        owner's snippets, optionally for one book).

        Raises:
            ValidationError: If there is nothing to narrate or *source* is unknown.
            CollaboratorError: If synthesis or speech generation fails.
        """
        if source is not None and source not in SOURCES:
            raise ValidationError(f"Unknown narration source '{source}'")
        if not text:
            text = self.compose(owner_id, source, book_id, snippet_ids)
        if not text or not text.strip():
            raise ValidationError("No text available to synthesize")
        if len(text) > MAX_SPEECH_CHARS:
            logger.info("Truncating narration text from %d to %d chars", len(text), MAX_SPEECH_CHARS)
            text = text[:MAX_SPEECH_CHARS]

        audio = self._speech.synthesize(text, voice or self.default_voice)
        path = f"audio/{owner_id}/{int(time.time() * 1000)}.mp3"
        url = self._blobs.put(path, audio, "audio/mpeg", AUDIO_URL_TTL_S)
        return NarrationResult(audio_url=url)

    def compose(
        self,
        owner_id: str,
        source: str | None,
        book_id: str | None,
        snippet_ids: list[str] | None,
    ) -> str:
        """Build the text to speak for *source*; sentences joined with ". "."""
        if source == "summary":
            summary = self._synthesis.summarize(owner_id, book_id=book_id, snippet_ids=snippet_ids)
            parts = list(summary.executive_summary) + [
                f"{c.snippet} relates to {c.related_book}: {c.related_quote}"
                for c in summary.cognitive_connections
            ]
        elif snippet_ids:
            parts = [s.text for s in self._snippets.get_many(owner_id, snippet_ids)]
        else:
            parts = [s.text for s in self._snippets.list_by_owner(owner_id, book_id=book_id)]
        return ". ".join(p for p in parts if p)
