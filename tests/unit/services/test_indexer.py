"""Tests for background vector indexing."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

from conftest import BlockingEmbedder, FailingEmbedder
from marginalia.services.indexer import SnippetIndexer


def test_upsert_embeds_and_writes_preview(embedder):
    index = MagicMock()
    indexer = SnippetIndexer(embedder, index)
    indexer.schedule_upsert("u1", "s1", "x" * 1500).result(timeout=5)
    indexer.close()

    snippet_id, vector, metadata = index.upsert.call_args.args
    assert snippet_id == "s1"
    assert vector == [1.0, 0.0, 0.0, 0.0]
    assert metadata["owner_id"] == "u1"
    assert len(metadata["text_preview"]) == 1000


def test_delete_forwarded(embedder):
    index = MagicMock()
    indexer = SnippetIndexer(embedder, index)
    indexer.schedule_delete("s1").result(timeout=5)
    indexer.close()
    index.delete.assert_called_once_with("s1")


def test_failure_is_logged_not_raised(caplog):
    indexer = SnippetIndexer(FailingEmbedder(), MagicMock())
    with caplog.at_level(logging.WARNING, logger="marginalia"):
        ok = indexer.schedule_upsert("u1", "s1", "text").result(timeout=5)
    indexer.close()
    assert ok is False
    assert indexer.failures == 1
    assert "s1" in caplog.text


def test_index_write_failure_is_logged(embedder, caplog):
    index = MagicMock()
    index.delete.side_effect = RuntimeError("index unavailable")
    indexer = SnippetIndexer(embedder, index)
    with caplog.at_level(logging.WARNING, logger="marginalia"):
        assert indexer.schedule_delete("s1").result(timeout=5) is False
    indexer.close()
    assert "delete" in caplog.text


def test_wait_reports_timeout():
    embedder = BlockingEmbedder()
    indexer = SnippetIndexer(embedder, MagicMock())
    indexer.schedule_upsert("u1", "s1", "text")
    assert indexer.wait(timeout=0.05) is False
    embedder.release.set()
    assert indexer.wait(timeout=5) is True
    assert indexer.pending() == 0
    indexer.close()


def test_wait_with_nothing_pending(embedder):
    indexer = SnippetIndexer(embedder, MagicMock())
    assert indexer.wait() is True
    indexer.close()
