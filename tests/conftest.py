"""Shared fixtures: an in-memory backend that records every call."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from scratchpad.backend import BackendError
from scratchpad.config import Settings
from scratchpad.models import Folder, Note


class FakeBackend:
    """In-memory ``Backend`` with switchable failures and an optional save delay."""

    def __init__(
        self,
        notes: list[Note] | None = None,
        folders: list[Folder] | None = None,
    ) -> None:
        self.notes: dict[str, Note] = {n.id: n.model_copy() for n in notes or []}
        self.folders: list[Folder] = (
            [f.model_copy() for f in folders] if folders is not None else [Folder.default()]
        )
        self.fail: set[str] = set()
        self.save_delay = 0.0
        self.saved: list[Note] = []  # every save_note attempt, in issue order
        self.deleted: list[str] = []
        self.folder_saves: list[list[Folder]] = []
        self.searches: list[str] = []
        self.active_saves = 0
        self.max_concurrent_saves: dict[str, int] = {}
        self._saving: dict[str, int] = {}

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise BackendError(operation, "simulated failure")

    async def load_folders(self) -> list[Folder]:
        self._check("load_folders")
        return [f.model_copy() for f in self.folders]

    async def load_notes(self) -> list[Note]:
        self._check("load_notes")
        return [n.model_copy() for n in self.notes.values()]

    async def save_note(self, note: Note) -> None:
        self.saved.append(note.model_copy())
        self._saving[note.id] = self._saving.get(note.id, 0) + 1
        self.max_concurrent_saves[note.id] = max(
            self.max_concurrent_saves.get(note.id, 0), self._saving[note.id]
        )
        try:
            if self.save_delay:
                await asyncio.sleep(self.save_delay)
            self._check("save_note")
            self.notes[note.id] = note.model_copy()
        finally:
            self._saving[note.id] -= 1

    async def save_folders(self, folders: list[Folder]) -> None:
        self.folder_saves.append([f.model_copy() for f in folders])
        self._check("save_folders")
        self.folders = [f.model_copy() for f in folders]

    async def delete_note(self, note_id: str) -> None:
        self._check("delete_note")
        self.deleted.append(note_id)
        self.notes.pop(note_id, None)

    async def search_notes(self, query: str) -> list[Note]:
        self.searches.append(query)
        self._check("search_notes")
        q = query.lower()
        return [
            n.model_copy()
            for n in self.notes.values()
            if q in n.title.lower() or q in n.content.lower()
        ]


def make_note(note_id: str, title: str = "", content: str = "", **fields) -> Note:
    return Note(id=note_id, title=title or note_id, content=content, created_at=1, updated_at=1, **fields)


@pytest.fixture()
def fast_settings(tmp_path: Path) -> Settings:
    """Settings with short timers and no auto-open on start."""
    return Settings(
        data_dir=tmp_path,
        autosave_delay=0.05,
        autosave_interval=60.0,
        search_delay=0.03,
        status_revert_delay=0.05,
        open_first_note=False,
    )


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend(
        notes=[
            make_note("note-1", "First", "first body"),
            make_note("note-2", "Second", "second body"),
            make_note("note-3", "Third", "third body"),
        ]
    )
