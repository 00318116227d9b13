"""Open editor tabs, in open order, with at most one active tab."""

from __future__ import annotations

from typing import Optional

from scratchpad.metrics import OPEN_TABS
from scratchpad.models import Note, Tab


class TabRegistry:
    """Tracks working copies of open notes.

    Holds at most one tab per note id. The active id, when set, always
    names an open tab.
    """

    def __init__(self) -> None:
        self._tabs: list[Tab] = []
        self._active_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self._tabs)

    def __contains__(self, note_id: object) -> bool:
        return any(t.id == note_id for t in self._tabs)

    @property
    def tabs(self) -> list[Tab]:
        return list(self._tabs)

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active(self) -> Optional[Tab]:
        if self._active_id is None:
            return None
        return self.get(self._active_id)

    def get(self, note_id: str) -> Optional[Tab]:
        return next((t for t in self._tabs if t.id == note_id), None)

    def index_of(self, note_id: str) -> int:
        for i, tab in enumerate(self._tabs):
            if tab.id == note_id:
                return i
        return -1

    def open(self, note: Note) -> tuple[Tab, bool]:
        """Return the tab for ``note``, creating it if needed.

        The flag is True when a new tab was appended. An existing tab is
        returned untouched, since it may hold unsaved edits.
        """
        existing = self.get(note.id)
        if existing is not None:
            return existing, False
        tab = Tab.from_note(note)
        self._tabs.append(tab)
        OPEN_TABS.set(len(self._tabs))
        return tab, True

    def activate(self, note_id: str) -> None:
        if note_id not in self:
            raise KeyError(note_id)
        self._active_id = note_id

    def remove(self, note_id: str) -> Optional[str]:
        """Remove a tab and return the id that should become active next.

        When the removed tab was active, the successor is the tab at
        ``max(0, index - 1)`` of the remaining sequence, or None when no tabs
        remain; the active id is updated accordingly. When it was not active,
        the current active id is returned unchanged.
        """
        index = self.index_of(note_id)
        if index == -1:
            return self._active_id

        del self._tabs[index]
        OPEN_TABS.set(len(self._tabs))

        if self._active_id == note_id:
            if self._tabs:
                self._active_id = self._tabs[max(0, index - 1)].id
            else:
                self._active_id = None
        return self._active_id

    def update(self, note_id: str, *, title: Optional[str] = None, content: Optional[str] = None) -> Optional[Tab]:
        tab = self.get(note_id)
        if tab is None:
            return None
        if title is not None:
            tab.title = title
        if content is not None:
            tab.content = content
        return tab
