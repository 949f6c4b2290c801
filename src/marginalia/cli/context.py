"""Shared CLI plumbing: common options and opening the library.

``open_library`` turns service exceptions into rich messages and exit code 1,
and always drains background indexing before the process exits.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from marginalia.app import Marginalia
from marginalia.cli.errors import (
    err_collaborator,
    err_config,
    err_no_api_key,
    err_no_db,
    err_not_found,
    err_search_timeout,
    err_validation,
)
from marginalia.config import ConfigError, MarginaliaConfig, load_config
from marginalia.errors import (
    CollaboratorError,
    MissingApiKeyError,
    NotFoundError,
    SearchTimeoutError,
    ValidationError,
)
from marginalia.logging_config import configure_ops_log

console = Console()

DEFAULT_OWNER = "local"

OwnerOption = Annotated[
    str,
    typer.Option("--owner", envvar="MARGINALIA_OWNER", help="Owner id whose library is used."),
]
DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the library database (default: storage.db_path)."),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print machine-readable JSON instead of a table."),
]


def load_cfg() -> MarginaliaConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: MarginaliaConfig) -> Path:
    return db if db is not None else Path(cfg.storage.db_path)


@contextmanager
def open_library(db: Path | None) -> Iterator[Marginalia]:
    """Open an existing library database and yield its services.

    Exits with code 1 (after printing an actionable message) on a missing
    database, invalid config, or any Marginalia error raised inside the block.
    """
    cfg = load_cfg()
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    ops_handler = configure_ops_log(db_path.parent)
    library = Marginalia.from_config(cfg, db_path)
    try:
        yield library
    except NotFoundError as exc:
        console.print(err_not_found(exc.kind, exc.record_id))
        raise typer.Exit(1)
    except ValidationError as exc:
        console.print(err_validation(str(exc)))
        raise typer.Exit(1)
    except SearchTimeoutError as exc:
        console.print(err_search_timeout(exc.timeout))
        raise typer.Exit(1)
    except MissingApiKeyError as exc:
        console.print(err_no_api_key(exc.provider, exc.env_var))
        raise typer.Exit(1)
    except CollaboratorError as exc:
        console.print(err_collaborator(str(exc)))
        raise typer.Exit(1)
    finally:
        library.close()
        logging.getLogger("marginalia").removeHandler(ops_handler)
        ops_handler.close()


def require(record: Any, kind: str, record_id: str) -> Any:
    """Return *record*, or raise NotFoundError when it is None."""
    if record is None:
        raise NotFoundError(kind, record_id)
    return record


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def preview(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 1] + "…"
