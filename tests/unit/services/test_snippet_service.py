"""Tests for the snippet ingestion pipeline."""

from __future__ import annotations

import logging

import pytest

from conftest import BlockingEmbedder, FailingEmbedder, FakeOCR
from marginalia.db.repository import Repository
from marginalia.errors import ValidationError
from marginalia.providers.vector_index import SqliteVectorIndex
from marginalia.services.indexer import SnippetIndexer
from marginalia.services.snippets import SnippetService

MODEL = "openai/text-embedding-3-small"


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def index(tmp_db):
    return SqliteVectorIndex(tmp_db, MODEL, 4)


def _service(repo, index, embedder, ocr=None):
    indexer = SnippetIndexer(embedder, index)
    return SnippetService(repo, ocr or FakeOCR(), indexer), indexer


# ------------------------------------------------------------------
# create
# ------------------------------------------------------------------


def test_create_from_text_persists_and_indexes(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="The obstacle is the way.", page_number=12)
    assert indexer.wait(timeout=5)
    indexer.close()

    stored = repo.get_snippet(snippet.id)
    assert stored.text == "The obstacle is the way."
    assert stored.page_number == 12
    assert index.preview(snippet.id) == "The obstacle is the way."
    assert embedder.calls == ["The obstacle is the way."]


def test_create_text_stored_verbatim(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="  padded  ")
    indexer.close()
    assert repo.get_snippet(snippet.id).text == "  padded  "


def test_create_from_image_uses_ocr(repo, index, embedder):
    ocr = FakeOCR("Text from the page")
    service, indexer = _service(repo, index, embedder, ocr)
    snippet = service.create("u1", "b1", image_bytes=b"jpeg")
    indexer.close()
    assert snippet.text == "Text from the page"
    assert ocr.calls == [b"jpeg"]


def test_create_literal_text_wins_over_image(repo, index, embedder):
    ocr = FakeOCR("ocr text")
    service, indexer = _service(repo, index, embedder, ocr)
    snippet = service.create("u1", "b1", text="typed", image_bytes=b"jpeg")
    indexer.close()
    assert snippet.text == "typed"
    assert ocr.calls == []


def test_create_requires_book(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    with pytest.raises(ValidationError, match="bookId"):
        service.create("u1", "", text="x")
    indexer.close()


@pytest.mark.parametrize("text, ocr_text", [(None, ""), ("   ", ""), (None, "  \n ")])
def test_create_without_usable_text_rejected(repo, index, embedder, text, ocr_text):
    service, indexer = _service(repo, index, embedder, FakeOCR(ocr_text))
    with pytest.raises(ValidationError, match="Could not extract or receive text"):
        service.create("u1", "b1", text=text, image_bytes=b"jpeg")
    indexer.close()
    assert repo.list_snippets("u1") == []


def test_create_returns_before_indexing_finishes(repo, index):
    embedder = BlockingEmbedder()
    service, indexer = _service(repo, index, embedder)

    snippet = service.create("u1", "b1", text="slow to embed")

    assert repo.get_snippet(snippet.id) is not None
    assert indexer.pending() == 1
    assert index.preview(snippet.id) is None
    embedder.release.set()
    assert indexer.wait(timeout=5)
    indexer.close()
    assert index.preview(snippet.id) == "slow to embed"


def test_create_succeeds_when_indexing_fails(repo, index, caplog):
    service, indexer = _service(repo, index, FailingEmbedder())
    with caplog.at_level(logging.WARNING, logger="marginalia"):
        snippet = service.create("u1", "b1", text="still saved")
        indexer.wait(timeout=5)
        indexer.close()

    assert repo.get_snippet(snippet.id).text == "still saved"
    assert indexer.failures == 1
    assert any(snippet.id in r.getMessage() for r in caplog.records)


# ------------------------------------------------------------------
# read / update / delete
# ------------------------------------------------------------------


def test_get_foreign_snippet_is_none(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="mine")
    indexer.close()
    assert service.get("u2", snippet.id) is None
    assert service.get("u1", snippet.id).id == snippet.id


def test_get_many_caps_at_ten_and_drops_foreign(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    ids = [service.create("u1", "b1", text=f"s{i}").id for i in range(12)]
    foreign = service.create("u2", "b1", text="theirs").id
    indexer.close()

    assert [s.id for s in service.get_many("u1", ids)] == ids[:10]
    assert [s.id for s in service.get_many("u1", [foreign, ids[0], "missing"])] == [ids[0]]
    assert service.get_many("u1", []) == []


def test_list_by_owner_newest_first(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    first = service.create("u1", "b1", text="first")
    second = service.create("u1", "b2", text="second")
    indexer.close()
    assert [s.id for s in service.list_by_owner("u1")] == [second.id, first.id]
    assert [s.id for s in service.list_by_owner("u1", book_id="b1")] == [first.id]


def test_update_rewrites_and_reindexes(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="before")
    indexer.wait(timeout=5)
    updated = service.update("u1", snippet.id, "after")
    indexer.wait(timeout=5)
    indexer.close()

    assert updated.text == "after"
    assert repo.get_snippet(snippet.id).text == "after"
    assert index.preview(snippet.id) == "after"


def test_update_foreign_or_missing_returns_none(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="mine")
    assert service.update("u2", snippet.id, "hijack") is None
    assert service.update("u1", "missing", "x") is None
    indexer.close()
    assert repo.get_snippet(snippet.id).text == "mine"


def test_update_empty_text_rejected(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="mine")
    with pytest.raises(ValidationError):
        service.update("u1", snippet.id, "  ")
    indexer.close()


def test_delete_removes_record_and_vector(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="gone soon")
    indexer.wait(timeout=5)
    assert service.delete("u1", snippet.id) is True
    indexer.wait(timeout=5)
    indexer.close()
    assert repo.get_snippet(snippet.id) is None
    assert index.preview(snippet.id) is None


def test_delete_twice_reports_missing_second_time(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="once")
    indexer.wait(timeout=5)
    assert service.delete("u1", snippet.id) is True
    indexer.wait(timeout=5)

    assert service.delete("u1", snippet.id) is False
    assert indexer.pending() == 0
    indexer.close()


def test_delete_foreign_returns_false(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    snippet = service.create("u1", "b1", text="mine")
    assert service.delete("u2", snippet.id) is False
    assert service.delete("u1", "missing") is False
    indexer.close()
    assert repo.get_snippet(snippet.id) is not None


def test_reindex_rebuilds_all_entries(repo, index, embedder):
    service, indexer = _service(repo, index, embedder)
    for i in range(3):
        service.create("u1", "b1", text=f"snippet {i}")
    indexer.wait(timeout=5)
    for row in repo.list_snippets("u1"):
        index.delete(row.id)

    assert service.reindex("u1") == 3
    indexer.wait(timeout=5)
    indexer.close()
    assert index.count("u1") == 3
