"""LiteLLM-backed collaborators: completion, embeddings, OCR, and speech.

All generative calls route through this module. LiteLLM's built-in retry
is used (num_retries=3, exponential backoff). Missing credentials are
handled per collaborator: the embedder degrades to zero vectors, the
others raise CollaboratorError when called.
"""

from __future__ import annotations

import base64
import logging
import os

import litellm

from marginalia.errors import CollaboratorError, MissingApiKeyError
from marginalia.providers.base import Completer, Embedder, SpeechSynthesizer, TextExtractor

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def _provider(model: str) -> str:
    return model.split("/")[0].lower() if "/" in model else "openai"


def has_api_key(model: str) -> bool:
    """Return True if the credential *model*'s provider needs is present (or none is needed)."""
    env_var = _PROVIDER_ENV.get(_provider(model))
    return env_var is None or bool(os.getenv(env_var))


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    if not has_api_key(model):
        provider = _provider(model)
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {_PROVIDER_ENV[provider]} environment variable."
        )


def require_api_key(model: str) -> None:
    """Like validate_api_key(), but raise MissingApiKeyError for the service layer."""
    try:
        validate_api_key(model)
    except EnvironmentError as exc:
        provider = _provider(model)
        raise MissingApiKeyError(provider, _PROVIDER_ENV.get(provider)) from exc


# ------------------------------------------------------------------
# Completion
# ------------------------------------------------------------------


class LiteLLMCompleter(Completer):
    """Single-turn text completion via ``litellm.completion()``."""

    def __init__(
        self,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        num_retries: int = 3,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.num_retries = num_retries

    def complete(self, prompt: str) -> str:
        """Return the text content of the first choice.

        Raises:
            CollaboratorError: On a missing API key or persistent API failure.
        """
        require_api_key(self.model)
        try:
            response = litellm.completion(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                num_retries=self.num_retries,
            )
        except Exception as exc:
            raise CollaboratorError(f"Completion with '{self.model}' failed: {exc}") from exc
        return response.choices[0].message.content or ""


# ------------------------------------------------------------------
# Embeddings
# ------------------------------------------------------------------


class LiteLLMEmbedder(Embedder):
    """Embeddings via ``litellm.embedding()``.

    Without credentials for the model's provider every call returns a zero
    vector of ``dimensions`` entries instead of failing (degraded mode).
    """

    def __init__(self, model: str, dimensions: int, num_retries: int = 3) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")
        self.model = model
        self.dimensions = dimensions
        self.num_retries = num_retries

    @property
    def degraded(self) -> bool:
        return not has_api_key(self.model)

    def embed(self, text: str) -> list[float]:
        """Return the embedding of *text* (zero vector in degraded mode).

        Raises:
            ValueError: If the provider returns a vector of the wrong length.
        """
        if self.degraded:
            logger.debug("No credentials for %s; returning zero vector", self.model)
            return [0.0] * self.dimensions

        response = litellm.embedding(
            model=self.model,
            input=[text],
            num_retries=self.num_retries,
        )
        vector = list(response.data[0]["embedding"])
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Embedding model '{self.model}' returned {len(vector)} dimensions, "
                f"expected {self.dimensions}. Update embedding.dimensions in marginalia.yaml."
            )
        return vector


# ------------------------------------------------------------------
# OCR
# ------------------------------------------------------------------

_NO_TEXT_MARKER = "NO_TEXT"

_OCR_PROMPT = (
    "Transcribe every word of printed or handwritten text visible in this image, "
    "exactly as written, preserving line breaks. Output only the transcription. "
    f"If the image contains no text, output {_NO_TEXT_MARKER}."
)

_IMAGE_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_image_type(data: bytes) -> str:
    """Return the MIME type of *data* from its magic bytes (JPEG when unknown)."""
    for signature, mime in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


class VisionTextExtractor(TextExtractor):
    """OCR by asking a vision-capable model to transcribe the image."""

    def __init__(self, model: str, max_tokens: int = 2048, num_retries: int = 3) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.num_retries = num_retries

    def extract_text(self, image_bytes: bytes) -> str:
        """Return the transcribed text, or "" when the image holds none.

        Raises:
            CollaboratorError: On a missing API key or persistent API failure.
        """
        if not image_bytes:
            return ""
        data_url = (
            f"data:{sniff_image_type(image_bytes)};base64,"
            f"{base64.b64encode(image_bytes).decode('ascii')}"
        )
        require_api_key(self.model)
        try:
            response = litellm.completion(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": _OCR_PROMPT},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    }
                ],
                max_tokens=self.max_tokens,
                temperature=0.0,
                num_retries=self.num_retries,
            )
        except Exception as exc:
            raise CollaboratorError(f"Text extraction with '{self.model}' failed: {exc}") from exc

        text = (response.choices[0].message.content or "").strip()
        if text == _NO_TEXT_MARKER:
            return ""
        return text


# ------------------------------------------------------------------
# Speech
# ------------------------------------------------------------------

# Narrator personas → provider voices.
VOICES: dict[str, str] = {
    "academic": "onyx",
    "conversational": "alloy",
    "calming": "shimmer",
}
DEFAULT_VOICE = "conversational"


class LiteLLMSpeechSynthesizer(SpeechSynthesizer):
    """Text-to-speech via ``litellm.speech()``; returns MP3 bytes."""

    def __init__(self, model: str) -> None:
        self.model = model

    def synthesize(self, text: str, voice: str) -> bytes:
        """Speak *text* with the narrator *voice* (unknown → conversational).

        Raises:
            CollaboratorError: On a missing API key, API failure, or empty audio.
        """
        provider_voice = VOICES.get(voice, VOICES[DEFAULT_VOICE])
        require_api_key(self.model)
        try:
            response = litellm.speech(
                model=self.model,
                voice=provider_voice,
                input=text,
                response_format="mp3",
            )
        except Exception as exc:
            raise CollaboratorError(f"Speech synthesis with '{self.model}' failed: {exc}") from exc

        audio = response.content
        if not audio:
            raise CollaboratorError("Speech synthesis returned no audio")
        return audio
