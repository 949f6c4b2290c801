"""marginalia folders CLI commands.

Commands:
  marginalia folders add NAME   — create a folder
  marginalia folders list       — list folders, newest first
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.table import Table

from marginalia.cli.context import (
    DEFAULT_OWNER,
    DbOption,
    JsonOption,
    OwnerOption,
    console,
    echo_json,
    open_library,
)

folders_app = typer.Typer(
    name="folders",
    help="Organize books into folders (add, list).",
    add_completion=False,
)


@folders_app.command("add")
def folders_add_cmd(
    name: Annotated[str, typer.Argument(help="Folder name (blank → 'Default').")] = "",
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """Create a folder."""
    with open_library(db) as lib:
        folder = lib.folders.create(owner, name)
    if as_json:
        echo_json(folder.to_dict())
        return
    console.print(f"  [green]✓[/] Folder [bold]{folder.name}[/] ({folder.id})")


@folders_app.command("list")
def folders_list_cmd(
    owner: OwnerOption = DEFAULT_OWNER,
    db: DbOption = None,
    as_json: JsonOption = False,
) -> None:
    """List folders, newest first."""
    with open_library(db) as lib:
        folders = lib.folders.list_by_owner(owner)
    if as_json:
        echo_json([f.to_dict() for f in folders])
        return
    if not folders:
        console.print("[yellow]No folders yet.[/]  Run:  marginalia folders add NAME")
        return

    table = Table(title="Folders", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Created")
    for folder in folders:
        table.add_row(folder.id, folder.name, folder.created_at[:19])
    console.print(table)
