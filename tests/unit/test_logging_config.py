"""Tests for logging setup."""

from __future__ import annotations

import logging

from marginalia.logging_config import configure_logging, configure_ops_log


def _stderr_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_marginalia_stderr", False)]


def test_configure_logging_default_warning() -> None:
    logger = configure_logging()
    assert logger.name == "marginalia"
    assert logger.level == logging.WARNING


def test_configure_logging_verbose_debug() -> None:
    logger = configure_logging(verbose=True)
    assert logger.level == logging.DEBUG
    configure_logging()


def test_configure_logging_idempotent() -> None:
    configure_logging()
    logger = configure_logging()
    assert len(_stderr_handlers(logger)) == 1


def test_configure_logging_quiets_litellm() -> None:
    configure_logging()
    assert logging.getLogger("LiteLLM").level == logging.ERROR


def test_ops_log_written(tmp_path) -> None:
    handler = configure_ops_log(tmp_path)
    logger = logging.getLogger("marginalia.services.indexer")
    try:
        logger.warning("Vector index upsert failed for snippet s1")
        handler.flush()
    finally:
        logging.getLogger("marginalia").removeHandler(handler)
        handler.close()
    content = (tmp_path / "marginalia-ops.log").read_text(encoding="utf-8")
    assert "upsert failed for snippet s1" in content
