"""Folders group books. They are append-only: created, listed, never renamed or deleted."""

from __future__ import annotations

from marginalia.db.models import Folder, new_id, utc_now
from marginalia.db.repository import Repository

DEFAULT_FOLDER_NAME = "Default"


class FolderService:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def create(self, owner_id: str, name: str | None) -> Folder:
        """Create a folder; a blank *name* becomes "Default"."""
        folder = Folder(
            id=new_id(),
            owner_id=owner_id,
            name=(name or "").strip() or DEFAULT_FOLDER_NAME,
            created_at=utc_now(),
        )
        self._repo.add_folder(folder)
        return folder

    def list_by_owner(self, owner_id: str) -> list[Folder]:
        return self._repo.list_folders(owner_id)

    def get(self, owner_id: str, folder_id: str) -> Folder | None:
        folder = self._repo.get_folder(folder_id)
        if folder is None or folder.owner_id != owner_id:
            return None
        return folder
