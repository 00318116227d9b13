"""In-memory canonical collections of notes and folders."""

from __future__ import annotations

import logging
from typing import Any

from scratchpad.backend import Backend, BackendError
from scratchpad.models import DEFAULT_FOLDER_ID, Folder, Note

logger = logging.getLogger(__name__)


class EntityStore:
    """Single source of truth for which notes and folders exist.

    Order is backend order; nothing here re-sorts. Partial mutations are
    in-memory only and the caller is responsible for persisting them.
    """

    def __init__(self, backend: Backend) -> None:
        self._backend = backend
        self._notes: list[Note] = []
        self._folders: list[Folder] = [Folder.default()]
        self._loaded = False

    @property
    def loaded(self) -> bool:
        """Whether ``load()`` has run (successfully or not)."""
        return self._loaded

    @property
    def notes(self) -> list[Note]:
        return list(self._notes)

    @property
    def folders(self) -> list[Folder]:
        return list(self._folders)

    async def load(self) -> bool:
        """Replace both collections with the backend's.

        On failure the store falls back to the default folder and no notes.
        """
        self._loaded = True
        try:
            folders = await self._backend.load_folders()
            notes = await self._backend.load_notes()
        except BackendError as e:
            logger.error("Failed to load data: %s", e)
            self._folders = [Folder.default()]
            self._notes = []
            return False

        if not any(f.id == DEFAULT_FOLDER_ID for f in folders):
            folders.insert(0, Folder.default())
        self._folders = folders
        self._notes = notes
        logger.info("Loaded %d notes and %d folders", len(notes), len(folders))
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_note(self, note_id: str) -> Note | None:
        return next((n for n in self._notes if n.id == note_id), None)

    def get_folder(self, folder_id: str) -> Folder | None:
        return next((f for f in self._folders if f.id == folder_id), None)

    def notes_in(self, folder_id: str) -> list[Note]:
        """Top-level notes (no parent) of a folder."""
        return [n for n in self._notes if n.folder_id == folder_id and not n.parent_id]

    def children_of(self, note_id: str) -> list[Note]:
        return [n for n in self._notes if n.parent_id == note_id]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_note(self, note: Note) -> None:
        self._notes.append(note)

    def remove_note(self, note_id: str) -> bool:
        before = len(self._notes)
        self._notes = [n for n in self._notes if n.id != note_id]
        return len(self._notes) != before

    def update_fields(self, note_id: str, **fields: Any) -> Note | None:
        """Set fields on a stored note in place. ``id`` cannot change."""
        if "id" in fields:
            raise ValueError("Note id is immutable")
        note = self.get_note(note_id)
        if note is None:
            return None
        for key, value in fields.items():
            setattr(note, key, value)
        return note

    def add_folder(self, folder: Folder) -> None:
        self._folders.append(folder)

    def remove_folder(self, folder_id: str) -> bool:
        """Remove a folder. The default folder is never removed."""
        if folder_id == DEFAULT_FOLDER_ID:
            return False
        before = len(self._folders)
        self._folders = [f for f in self._folders if f.id != folder_id]
        return len(self._folders) != before

    async def save_folders(self) -> None:
        """Persist the full folder collection. Raises ``BackendError``."""
        await self._backend.save_folders(self.folders)
