"""Sidebar view controller: folder/note tree or flat search results."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from scratchpad.backend import Backend
from scratchpad.entity_store import EntityStore
from scratchpad.metrics import SEARCHES
from scratchpad.models import DEFAULT_FOLDER_ID, Note
from scratchpad.timers import Callback, Debouncer

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No results"

Guard = Callable[[Callback], Awaitable[None]]


class ViewMode(str, Enum):
    TREE = "tree"
    SEARCH = "search"


class NoteNode(BaseModel):
    id: str
    title: str
    sub_note: bool = False
    children: list["NoteNode"] = Field(default_factory=list)


class FolderNode(BaseModel):
    id: str
    name: str
    deletable: bool = True
    notes: list[NoteNode] = Field(default_factory=list)


class SidebarView(BaseModel):
    """What the sidebar currently shows."""

    mode: ViewMode = ViewMode.TREE
    query: str = ""
    tree: list[FolderNode] = Field(default_factory=list)
    results: list[NoteNode] = Field(default_factory=list)
    empty_message: Optional[str] = None
    selected_id: Optional[str] = None


def build_tree(store: EntityStore, titles: Optional[dict[str, str]] = None) -> list[FolderNode]:
    """Project the store into folders → top-level notes → direct children.

    ``titles`` overrides stored titles (working copies of open tabs).
    """
    titles = titles or {}

    def node(note: Note, sub_note: bool = False) -> NoteNode:
        return NoteNode(id=note.id, title=titles.get(note.id, note.title), sub_note=sub_note)

    tree = []
    for folder in store.folders:
        folder_node = FolderNode(
            id=folder.id, name=folder.name, deletable=folder.id != DEFAULT_FOLDER_ID
        )
        for note in store.notes_in(folder.id):
            note_node = node(note)
            note_node.children = [node(child, sub_note=True) for child in store.children_of(note.id)]
            folder_node.notes.append(note_node)
        tree.append(folder_node)
    return tree


class BrowseController:
    """Switches the sidebar between the hierarchical tree and search results.

    Non-empty queries are debounced; a blank query returns to the tree at
    once. Results for a query that is no longer current are dropped.
    """

    def __init__(
        self,
        store: EntityStore,
        backend: Backend,
        search_delay: float = 0.3,
        titles: Optional[Callable[[], dict[str, str]]] = None,
        guard: Optional[Guard] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._store = store
        self._backend = backend
        self._debounce = Debouncer("search", search_delay)
        self._titles = titles or dict
        self._guard = guard
        self._on_change = on_change
        self._query = ""
        self._view = SidebarView()

    @property
    def query(self) -> str:
        return self._query

    @property
    def search_pending(self) -> bool:
        return self._debounce.pending

    def view(self, selected_id: Optional[str] = None) -> SidebarView:
        return self._view.model_copy(update={"selected_id": selected_id})

    def query_changed(self, query: str) -> None:
        """Handle a keystroke in the search box."""
        self._query = query
        if not query.strip():
            self._debounce.cancel()
            self.show_tree()
            return
        self._debounce.schedule(self._debounced_search)

    async def _debounced_search(self) -> None:
        query = self._query
        if self._guard is not None:
            await self._guard(lambda: self.perform_search(query))
        else:
            await self.perform_search(query)

    async def perform_search(self, query: str) -> None:
        """Search the backend and show a flat result list."""
        self._query = query
        if not query.strip():
            self.show_tree()
            return

        try:
            results = await self._backend.search_notes(query)
        except Exception as e:
            logger.error("Search failed: %s", e)
            SEARCHES.labels(status="error").inc()
            return

        SEARCHES.labels(status="success").inc()
        if query != self._query:
            logger.debug("Dropping stale results for %r", query)
            return

        titles = self._titles()
        self._view = SidebarView(
            mode=ViewMode.SEARCH,
            query=query,
            results=[NoteNode(id=n.id, title=titles.get(n.id, n.title)) for n in results],
            empty_message=None if results else NO_RESULTS_MESSAGE,
        )
        self._notify()

    def show_tree(self) -> None:
        self._view = SidebarView(mode=ViewMode.TREE, tree=build_tree(self._store, self._titles()))
        self._notify()

    def refresh(self) -> None:
        """Re-render after the store or a working title changed.

        Search results keep their order; deleted notes drop out and titles
        follow the store and open tabs.
        """
        if self._view.mode is ViewMode.TREE:
            self.show_tree()
            return
        titles = self._titles()
        results = []
        for node in self._view.results:
            note = self._store.get_note(node.id)
            if note is not None:
                results.append(NoteNode(id=note.id, title=titles.get(note.id, note.title)))
        self._view = self._view.model_copy(
            update={
                "results": results,
                "empty_message": None if results else NO_RESULTS_MESSAGE,
            }
        )
        self._notify()

    def cancel(self) -> None:
        self._debounce.cancel()

    def _notify(self) -> None:
        if self._on_change:
            self._on_change()
