"""Pydantic models for notes, folders and editor tabs."""

from __future__ import annotations

import threading
import time
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_FOLDER_ID = "default"
DEFAULT_FOLDER_NAME = "Notes"
UNTITLED_TITLE = "Untitled Note"
TITLE_MAX_LENGTH = 50

_id_lock = threading.Lock()
_last_timestamp = 0


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def next_timestamp() -> int:
    """Return a millisecond timestamp strictly greater than the previous one.

    Ids are derived from this value, so two notes created within the same
    millisecond still receive distinct ids.
    """
    global _last_timestamp
    with _id_lock:
        ts = max(now_ms(), _last_timestamp + 1)
        _last_timestamp = ts
        return ts


def derive_title(text: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """First line of plain text, trimmed and truncated. Empty if blank."""
    first_line = text.split("\n", 1)[0].strip()
    return first_line[:max_length]


class Note(BaseModel):
    """A single note as held by the storage backend."""

    id: str = Field(..., min_length=1, description="Immutable unique id")
    title: str = Field(default=UNTITLED_TITLE, description="Derived display title")
    content: str = Field(default="", description="Opaque rich-text payload")
    folder_id: str = Field(default=DEFAULT_FOLDER_ID, description="Owning folder id")
    parent_id: Optional[str] = Field(default=None, description="Parent note id")
    created_at: int = Field(default_factory=now_ms, description="Epoch millis")
    updated_at: int = Field(default_factory=now_ms, description="Epoch millis")

    @classmethod
    def create(cls, folder_id: str = DEFAULT_FOLDER_ID) -> "Note":
        """Build a fresh, empty note with a timestamp-derived id."""
        ts = next_timestamp()
        return cls(
            id=f"note-{ts}",
            title=UNTITLED_TITLE,
            content="",
            folder_id=folder_id,
            parent_id=None,
            created_at=ts,
            updated_at=ts,
        )


class Folder(BaseModel):
    """A named container for notes."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    parent_id: Optional[str] = None

    @classmethod
    def create(cls, name: str) -> "Folder":
        return cls(id=f"folder-{next_timestamp()}", name=name)

    @classmethod
    def default(cls) -> "Folder":
        return cls(id=DEFAULT_FOLDER_ID, name=DEFAULT_FOLDER_NAME)


class Tab(BaseModel):
    """Working copy of an open note's editable fields."""

    id: str
    title: str
    content: str

    @classmethod
    def from_note(cls, note: Note) -> "Tab":
        return cls(id=note.id, title=note.title, content=note.content)
