"""Logging configuration for marginalia.

Library output (LiteLLM, httpx) is kept quiet by default. Background
indexing failures are only ever reported through the ``marginalia`` logger,
so ``configure_ops_log`` keeps a persistent record of them next to the
database.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOGGER_NAME = "marginalia"
_NOISY_LIBRARIES = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy", "httpx", "httpcore")
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach a stderr handler to the marginalia logger.

    Args:
        verbose: Log DEBUG and above (and let library loggers through at
            INFO) instead of WARNING and above.

    Returns:
        The configured ``marginalia`` logger.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)

    handler = next(
        (h for h in logger.handlers if getattr(h, "_marginalia_stderr", False)), None
    )
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
        handler._marginalia_stderr = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    else:
        handler.setStream(sys.stderr)
    handler.setLevel(level)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.ERROR)

    return logger


def configure_ops_log(directory: Path | str) -> RotatingFileHandler:
    """Write INFO+ marginalia records to ``{directory}/marginalia-ops.log``.

    Rotates at 1 MB with 3 backups. Returns the handler so callers can
    remove it on shutdown.
    """
    log_path = Path(directory) / "marginalia-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(str(log_path), maxBytes=1_000_000, backupCount=3)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger = logging.getLogger(_LOGGER_NAME)
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    return handler
