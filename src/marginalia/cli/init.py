"""marginalia init: create the library database and a project config.

Creates:
  .marginalia.db           — empty library with schema (path from --db / storage.db_path)
  marginalia.yaml          — project config with the defaults spelled out
  ~/.marginalia/config.yaml — global model config (only with --global, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from marginalia.cli.context import DbOption, console, load_cfg, resolve_db
from marginalia.config import ensure_global_config
from marginalia.db.connection import Database
from marginalia.db.schema import initialize, schema_version

_PROJECT_CONFIG = "marginalia.yaml"

_PROJECT_CONFIG_TEMPLATE = """\
# Marginalia project configuration. API keys belong in environment variables.
storage:
  db_path: {db_path}
  blob_dir: .marginalia-blobs

embedding:
  model: openai/text-embedding-3-small
  dimensions: 1536

generation:
  model: openai/gpt-4o-mini

search:
  default_limit: 20
  scan_limit: 200

vector:
  enabled: true
"""


def init_cmd(
    db: DbOption = None,
    write_global: Annotated[
        bool,
        typer.Option("--global", help="Also create ~/.marginalia/config.yaml if missing."),
    ] = False,
) -> None:
    """Create an empty library database (existing data is preserved)."""
    cfg = load_cfg()
    db_path = resolve_db(db, cfg)
    existed = db_path.exists()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with Database(db_path) as conn:
        initialize(conn)
        version = schema_version(conn)

    verb = "Upgraded" if existed else "Created"
    console.print(f"  [green]✓[/] {verb} {db_path} (schema v{version})")

    project_cfg = Path(_PROJECT_CONFIG)
    if not project_cfg.exists():
        project_cfg.write_text(_PROJECT_CONFIG_TEMPLATE.format(db_path=db_path), encoding="utf-8")
        console.print(f"  [green]✓[/] {project_cfg}")

    if write_global:
        cfg_path = ensure_global_config()
        console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. marginalia books add --title ... --author ...")
    console.print("  2. marginalia snippets add --book ID --text ...")
    console.print("  3. marginalia search \"...\"")
