"""Session commands and keyboard shortcut mapping."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class CommandType(str, Enum):
    OPEN_NOTE = "open_note"
    SWITCH_TAB = "switch_tab"
    CLOSE_TAB = "close_tab"
    CLOSE_ACTIVE_TAB = "close_active_tab"
    NEW_NOTE = "new_note"
    DELETE_NOTE = "delete_note"
    NEW_FOLDER = "new_folder"
    DELETE_FOLDER = "delete_folder"
    SELECT_FOLDER = "select_folder"
    EDIT = "edit"
    BLUR = "blur"
    SAVE = "save"
    SEARCH = "search"


# Fields each command type must carry.
REQUIRED_FIELDS: dict[CommandType, tuple[str, ...]] = {
    CommandType.OPEN_NOTE: ("note_id",),
    CommandType.SWITCH_TAB: ("note_id",),
    CommandType.CLOSE_TAB: ("note_id",),
    CommandType.DELETE_NOTE: ("note_id",),
    CommandType.DELETE_FOLDER: ("folder_id",),
    CommandType.SELECT_FOLDER: ("folder_id",),
    CommandType.NEW_FOLDER: ("name",),
    CommandType.EDIT: ("content",),
    CommandType.BLUR: ("text",),
    CommandType.SEARCH: ("query",),
}


class Command(BaseModel):
    """A user action routed through the session orchestrator."""

    type: CommandType
    note_id: Optional[str] = None
    folder_id: Optional[str] = None
    name: Optional[str] = None
    content: Optional[str] = Field(default=None, description="Editor payload after an edit")
    text: Optional[str] = Field(default=None, description="Editor plain text on blur")
    query: Optional[str] = None

    @model_validator(mode="after")
    def _check_required(self) -> "Command":
        missing = [f for f in REQUIRED_FIELDS.get(self.type, ()) if getattr(self, f) is None]
        if missing:
            raise ValueError(f"{self.type.value} requires {', '.join(missing)}")
        return self


def resolve_shortcut(key: str, modifier: bool, open_tabs: int) -> Optional[Command]:
    """Map a Ctrl/Cmd key press to a session command.

    Returns None for keys that are not session commands, including the
    formatting keys (b, i, u) which the editor handles itself.
    """
    if not modifier:
        return None
    key = key.lower()
    if key == "n":
        return Command(type=CommandType.NEW_NOTE)
    if key == "s":
        return Command(type=CommandType.SAVE)
    if key == "w" and open_tabs > 1:
        return Command(type=CommandType.CLOSE_ACTIVE_TAB)
    return None
