"""Session orchestrator: routes user commands into the session state.

Commands are handled one at a time. A handler runs to completion,
including any backend call it awaits, before the next command or timer
callback is processed; timers that fire meanwhile wait their turn.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from scratchpad.backend import Backend
from scratchpad.browse import BrowseController, SidebarView
from scratchpad.commands import Command, CommandType
from scratchpad.config import Settings, settings as default_settings
from scratchpad.entity_store import EntityStore
from scratchpad.metrics import COMMANDS
from scratchpad.models import DEFAULT_FOLDER_ID, Folder, Note, Tab, derive_title
from scratchpad.persistence import PersistenceCoordinator, SaveTrigger, apply_tab
from scratchpad.status import SaveStatus, StatusIndicator
from scratchpad.tabs import TabRegistry
from scratchpad.timers import Callback, IntervalTimer

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
Listener = Callable[["View"], None]

DELETE_NOTE_PROMPT = "Delete this note?"
DELETE_FOLDER_PROMPT = "Delete this folder? (Notes will not be deleted)"


class SessionNotReady(RuntimeError):
    """A command was dispatched before the entity store was loaded."""


class View(str, Enum):
    """Parts of the UI that need re-rendering after a state change."""

    TABS = "tabs"
    EDITOR = "editor"
    TREE = "tree"
    STATUS = "status"


class SessionState(BaseModel):
    """Serialisable snapshot of the session."""

    tabs: list[Tab]
    active_id: Optional[str]
    current_folder: str
    status: SaveStatus
    status_text: str
    sidebar: SidebarView


class SessionOrchestrator:
    """Owns note, folder and tab state and enforces the tab invariants."""

    def __init__(
        self,
        backend: Backend,
        settings: Settings = default_settings,
        confirm: Optional[Confirm] = None,
    ) -> None:
        self.settings = settings
        self._backend = backend
        self._confirm = confirm or (lambda message: True)
        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._closed = False
        self.current_folder = DEFAULT_FOLDER_ID

        self.store = EntityStore(backend)
        self.tabs = TabRegistry()
        self.status = StatusIndicator(
            settings.status_revert_delay, on_change=lambda _: self._notify(View.STATUS)
        )
        self.persistence = PersistenceCoordinator(backend, self.status, settings.autosave_delay)
        self.browse = BrowseController(
            self.store,
            backend,
            settings.search_delay,
            titles=self._working_titles,
            guard=self._exclusive,
            on_change=lambda: self._notify(View.TREE),
        )
        self._interval = IntervalTimer(
            "autosave-interval", settings.autosave_interval, self._on_interval
        )

        self._handlers: dict[CommandType, Callable[[Command], Awaitable[object]]] = {
            CommandType.OPEN_NOTE: lambda c: self._open_note(c.note_id),
            CommandType.SWITCH_TAB: lambda c: self._switch_to(c.note_id),
            CommandType.CLOSE_TAB: lambda c: self._close_tab(c.note_id),
            CommandType.CLOSE_ACTIVE_TAB: lambda c: self._close_active_tab(),
            CommandType.NEW_NOTE: lambda c: self._create_note(),
            CommandType.DELETE_NOTE: lambda c: self._delete_note(c.note_id),
            CommandType.NEW_FOLDER: lambda c: self._create_folder(c.name),
            CommandType.DELETE_FOLDER: lambda c: self._delete_folder(c.folder_id),
            CommandType.SELECT_FOLDER: lambda c: self._select_folder(c.folder_id),
            CommandType.EDIT: lambda c: self._edit(c.content),
            CommandType.BLUR: lambda c: self._blur(c.text),
            CommandType.SAVE: lambda c: self._save(),
            CommandType.SEARCH: lambda c: self._search(c.query),
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Load data, open the first note (or create one), start the interval timer.

        Returns False when the initial load failed; the session is then
        empty but usable.
        """
        async with self._lock:
            loaded = await self.store.load()
            self.browse.show_tree()
            if not loaded:
                self.status.set(SaveStatus.ERROR)
            elif self.settings.open_first_note:
                notes = self.store.notes
                if notes:
                    await self._open_note(notes[0].id)
                else:
                    await self._create_note()
        self._interval.start()
        return loaded

    async def shutdown(self) -> None:
        """Stop timers and flush the active tab, waiting for pending writes."""
        self._closed = True
        await self._interval.stop()
        self.browse.cancel()
        async with self._lock:
            self.persistence.cancel_autosave()
            self._save_active(SaveTrigger.SHUTDOWN)
        await self.persistence.drain()
        self.status.cancel()
        logger.info("Session shut down")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, command: Command) -> object:
        """Run one command to completion."""
        if not self.store.loaded:
            raise SessionNotReady("load() must run before any session command")
        COMMANDS.labels(command=command.type.value).inc()
        async with self._lock:
            return await self._handlers[command.type](command)

    async def open_note(self, note_id: str) -> bool:
        return await self.dispatch(Command(type=CommandType.OPEN_NOTE, note_id=note_id))

    async def switch_to(self, note_id: str) -> bool:
        return await self.dispatch(Command(type=CommandType.SWITCH_TAB, note_id=note_id))

    async def close_tab(self, note_id: str) -> bool:
        return await self.dispatch(Command(type=CommandType.CLOSE_TAB, note_id=note_id))

    async def create_note(self) -> Optional[Note]:
        return await self.dispatch(Command(type=CommandType.NEW_NOTE))

    async def delete_note(self, note_id: str) -> bool:
        return await self.dispatch(Command(type=CommandType.DELETE_NOTE, note_id=note_id))

    async def create_folder(self, name: str) -> Optional[Folder]:
        return await self.dispatch(Command(type=CommandType.NEW_FOLDER, name=name))

    async def delete_folder(self, folder_id: str) -> bool:
        return await self.dispatch(Command(type=CommandType.DELETE_FOLDER, folder_id=folder_id))

    async def select_folder(self, folder_id: str) -> bool:
        return await self.dispatch(Command(type=CommandType.SELECT_FOLDER, folder_id=folder_id))

    async def edit(self, content: str) -> bool:
        return await self.dispatch(Command(type=CommandType.EDIT, content=content))

    async def blur(self, text: str) -> bool:
        return await self.dispatch(Command(type=CommandType.BLUR, text=text))

    async def save(self) -> bool:
        return await self.dispatch(Command(type=CommandType.SAVE))

    async def search(self, query: str) -> bool:
        return await self.dispatch(Command(type=CommandType.SEARCH, query=query))

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a re-render listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> SessionState:
        return SessionState(
            tabs=[t.model_copy() for t in self.tabs.tabs],
            active_id=self.tabs.active_id,
            current_folder=self.current_folder,
            status=self.status.status,
            status_text=self.status.text,
            sidebar=self.browse.view(selected_id=self.tabs.active_id),
        )

    def _notify(self, view: View) -> None:
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.warning("Listener failed on %s: %s", view.value, e)

    def _working_titles(self) -> dict[str, str]:
        return {t.id: t.title for t in self.tabs.tabs}

    # ------------------------------------------------------------------
    # Tab transitions
    # ------------------------------------------------------------------

    async def _open_note(self, note_id: str) -> bool:
        note = self.store.get_note(note_id)
        if note is None:
            logger.debug("open_note: unknown note %s", note_id)
            return False
        _, created = self.tabs.open(note)
        if created:
            self._notify(View.TABS)
        return await self._switch_to(note_id)

    async def _switch_to(self, note_id: str) -> bool:
        if note_id not in self.tabs:
            logger.debug("switch_to: no tab for %s", note_id)
            return False
        self._save_active(SaveTrigger.NAVIGATION)
        self.tabs.activate(note_id)
        self._notify(View.TABS)
        self._notify(View.EDITOR)
        self._notify(View.TREE)
        return True

    async def _close_tab(self, note_id: str, save: bool = True) -> bool:
        if note_id not in self.tabs:
            logger.debug("close_tab: no tab for %s", note_id)
            return False
        was_active = self.tabs.active_id == note_id
        if was_active and save:
            self._save_active(SaveTrigger.NAVIGATION)
        self.persistence.cancel_autosave(note_id)
        self.tabs.remove(note_id)
        self._notify(View.TABS)
        if was_active:
            self._notify(View.EDITOR)
            self._notify(View.TREE)
        return True

    async def _close_active_tab(self) -> bool:
        if self.tabs.active_id is None:
            return False
        return await self._close_tab(self.tabs.active_id)

    # ------------------------------------------------------------------
    # Note and folder lifecycle
    # ------------------------------------------------------------------

    async def _create_note(self) -> Optional[Note]:
        note = Note.create(folder_id=self.current_folder)
        if not await self.persistence.save(note, SaveTrigger.CREATE, notify=True):
            self.persistence.forget_failure(note.id)
            return None
        self.store.add_note(note)
        self.browse.refresh()
        await self._open_note(note.id)
        logger.info("Created note %s in folder %s", note.id, note.folder_id)
        return note

    async def _delete_note(self, note_id: str) -> bool:
        if self.store.get_note(note_id) is None and note_id not in self.tabs:
            logger.debug("delete_note: unknown note %s", note_id)
            return False
        if not self._confirm(DELETE_NOTE_PROMPT):
            return False

        await self.persistence.wait_for(note_id)
        try:
            await self._backend.delete_note(note_id)
        except Exception as e:
            logger.error("Failed to delete note %s: %s", note_id, e)
            return False

        self.persistence.cancel_autosave(note_id)
        self.persistence.forget_failure(note_id)
        self.store.remove_note(note_id)
        await self._close_tab(note_id, save=False)
        self.browse.refresh()
        logger.info("Deleted note %s", note_id)
        return True

    async def _create_folder(self, name: str) -> Optional[Folder]:
        name = name.strip()
        if not name:
            return None
        folder = Folder.create(name)
        self.store.add_folder(folder)
        await self.persistence.save_folders(self.store.save_folders)
        self.browse.refresh()
        logger.info("Created folder %s (%s)", folder.id, folder.name)
        return folder

    async def _delete_folder(self, folder_id: str) -> bool:
        if folder_id == DEFAULT_FOLDER_ID:
            logger.warning("The default folder cannot be deleted")
            return False
        if self.store.get_folder(folder_id) is None:
            logger.debug("delete_folder: unknown folder %s", folder_id)
            return False
        if not self._confirm(DELETE_FOLDER_PROMPT):
            return False

        self.store.remove_folder(folder_id)
        if self.current_folder == folder_id:
            self.current_folder = DEFAULT_FOLDER_ID
        await self.persistence.save_folders(self.store.save_folders)
        self.browse.refresh()
        logger.info("Deleted folder %s", folder_id)
        return True

    async def _select_folder(self, folder_id: str) -> bool:
        if self.store.get_folder(folder_id) is None:
            return False
        self.current_folder = folder_id
        return True

    # ------------------------------------------------------------------
    # Editing and saving
    # ------------------------------------------------------------------

    async def _edit(self, content: str) -> bool:
        tab = self.tabs.active
        if tab is None:
            return False
        self.tabs.update(tab.id, content=content)
        self.status.set(SaveStatus.SAVING)
        self.persistence.schedule_autosave(tab.id, self._on_autosave)
        return True

    async def _blur(self, text: str) -> bool:
        """Derive the active tab's title from the first line of its text."""
        tab = self.tabs.active
        if tab is None:
            return False
        title = derive_title(text, self.settings.title_max_length)
        if not title or title == tab.title:
            return False
        self.tabs.update(tab.id, title=title)
        self._notify(View.TABS)
        self.browse.refresh()
        return True

    async def _save(self) -> bool:
        task = self._save_active(SaveTrigger.EXPLICIT, notify=True)
        if task is None:
            return False
        return await asyncio.shield(task)

    async def _search(self, query: str) -> bool:
        self.browse.query_changed(query)
        return True

    def _save_active(
        self, trigger: SaveTrigger, notify: bool = False
    ) -> Optional[asyncio.Task]:
        """Copy the active tab into its note and issue the write.

        Returns the write task, or None when there is nothing to save.
        """
        tab = self.tabs.active
        if tab is None:
            return None
        note = self.store.get_note(tab.id)
        if note is None:
            return None
        apply_tab(note, tab)
        return self.persistence.issue(note, trigger, notify)

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    async def _exclusive(self, callback: Callback) -> None:
        async with self._lock:
            await callback()

    async def _on_autosave(self) -> None:
        await self._exclusive(lambda: self._timed_save(SaveTrigger.AUTOSAVE))

    async def _on_interval(self) -> None:
        await self._exclusive(lambda: self._timed_save(SaveTrigger.INTERVAL))

    async def _timed_save(self, trigger: SaveTrigger) -> None:
        if self._closed:
            return
        task = self._save_active(trigger)
        if task is not None:
            await asyncio.shield(task)
