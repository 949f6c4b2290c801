"""Shared pytest fixtures and in-memory collaborator fakes."""

from __future__ import annotations

import threading

import pytest

from marginalia.app import Marginalia
from marginalia.config import EmbeddingCfg, MarginaliaConfig, StorageCfg
from marginalia.db.connection import Database
from marginalia.db.schema import initialize
from marginalia.providers.base import (
    BookMetadata,
    BookMetadataLookup,
    Completer,
    Embedder,
    SpeechSynthesizer,
    TextExtractor,
)
from marginalia.providers.blob import LocalBlobStore

DIMS = 4


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeEmbedder(Embedder):
    """Returns vectors from a lookup table; unknown text maps to *default*."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, default=None) -> None:
        self.dimensions = DIMS
        self.vectors = dict(vectors or {})
        self.default = default or [1.0, 0.0, 0.0, 0.0]
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


class FailingEmbedder(FakeEmbedder):
    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        raise RuntimeError("embedding provider down")


class BlockingEmbedder(FakeEmbedder):
    """Blocks every call until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def embed(self, text: str) -> list[float]:
        self.release.wait(timeout=10)
        return super().embed(text)


class FakeOCR(TextExtractor):
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.calls: list[bytes] = []

    def extract_text(self, image_bytes: bytes) -> str:
        self.calls.append(image_bytes)
        return self.text


class FakeCompleter(Completer):
    def __init__(self, reply: str = "{}") -> None:
        self.reply = reply
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class FakeSpeech(SpeechSynthesizer):
    def __init__(self, audio: bytes = b"ID3-fake-mp3") -> None:
        self.audio = audio
        self.calls: list[tuple[str, str]] = []

    def synthesize(self, text: str, voice: str) -> bytes:
        self.calls.append((text, voice))
        return self.audio


class FakeLookup(BookMetadataLookup):
    def __init__(self, result: BookMetadata | None = None) -> None:
        self.result = result
        self.calls: list[dict] = []

    def lookup(self, isbn=None, title=None, author=None) -> BookMetadata | None:
        self.calls.append({"isbn": isbn, "title": title, "author": author})
        return self.result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep real credentials and MARGINALIA_* overrides out of every test."""
    for var in (
        "OPENAI_API_KEY",
        "MARGINALIA_DB",
        "MARGINALIA_GENERATION_MODEL",
        "MARGINALIA_EMBEDDING_MODEL",
        "MARGINALIA_OCR_MODEL",
        "MARGINALIA_VECTOR_INDEX",
        "MARGINALIA_OWNER",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("MARGINALIA_BLOB_SECRET", "test-secret")


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".marginalia.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def ocr():
    return FakeOCR()


@pytest.fixture
def completer():
    return FakeCompleter()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def lookup():
    return FakeLookup()


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(tmp_path / "blobs", base_url="https://blobs.test", secret="test-secret")


@pytest.fixture
def cfg(tmp_path) -> MarginaliaConfig:
    return MarginaliaConfig(
        storage=StorageCfg(db_path=str(tmp_path / ".marginalia.db"), blob_dir=str(tmp_path / "blobs")),
        embedding=EmbeddingCfg(model="openai/text-embedding-3-small", dimensions=DIMS),
    )


@pytest.fixture
def library(cfg, embedder, ocr, completer, speech, blobs, lookup):
    """Fully wired Marginalia on a temp database with fake collaborators."""
    lib = Marginalia.from_config(
        cfg,
        embedder=embedder,
        ocr=ocr,
        completer=completer,
        speech=speech,
        blobs=blobs,
        lookup=lookup,
    )
    yield lib
    lib.close()
