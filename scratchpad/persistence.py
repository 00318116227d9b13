"""Persistence coordinator: debounced autosave and sequenced note writes.

Every write is issued as its own task from a snapshot of the note taken at
issue time. Writes for the same note id are chained, so a second write for
a note waits for the first to resolve instead of racing it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from scratchpad.backend import Backend, BackendError
from scratchpad.metrics import NOTE_SAVES, SAVE_DURATION
from scratchpad.models import Note, Tab, now_ms
from scratchpad.status import SaveStatus, StatusIndicator
from scratchpad.timers import Callback, Debouncer

logger = logging.getLogger(__name__)


class SaveTrigger(str, Enum):
    EXPLICIT = "explicit"  # user pressed save
    NAVIGATION = "navigation"  # switching away from / closing a tab
    AUTOSAVE = "autosave"  # edit debounce elapsed
    INTERVAL = "interval"  # safety-net timer
    CREATE = "create"  # new note
    SHUTDOWN = "shutdown"


def apply_tab(note: Note, tab: Tab) -> Note:
    """Copy a tab's working fields into its note and refresh ``updated_at``."""
    note.content = tab.content
    note.title = tab.title
    note.updated_at = max(now_ms(), note.updated_at + 1)
    return note


class PersistenceCoordinator:
    """Issues note writes and owns the edit-autosave debounce slot."""

    def __init__(
        self,
        backend: Backend,
        status: StatusIndicator,
        autosave_delay: float = 2.0,
    ) -> None:
        self._backend = backend
        self._status = status
        self._autosave = Debouncer("autosave", autosave_delay)
        self._autosave_note_id: Optional[str] = None
        self._inflight: dict[str, asyncio.Task] = {}
        # Note ids whose latest write failed, plus the folder list when its save failed.
        self._failed: set[str] = set()
        self._folders_failed = False

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    @property
    def failed(self) -> set[str]:
        return set(self._failed)

    @property
    def has_failures(self) -> bool:
        return bool(self._failed) or self._folders_failed

    # ------------------------------------------------------------------
    # Debounced autosave
    # ------------------------------------------------------------------

    def schedule_autosave(self, note_id: str, callback: Callback) -> None:
        """Restart the edit-autosave timer for ``note_id``."""
        self._autosave_note_id = note_id
        self._autosave.schedule(callback)

    def cancel_autosave(self, note_id: Optional[str] = None) -> None:
        """Cancel the pending autosave (only if it targets ``note_id``, when given)."""
        if note_id is not None and note_id != self._autosave_note_id:
            return
        self._autosave.cancel()
        self._autosave_note_id = None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def issue(self, note: Note, trigger: SaveTrigger, notify: bool = False) -> asyncio.Task:
        """Issue a write for ``note`` without waiting for it.

        Cancels any pending autosave for the same note. Returns the write
        task, whose result is True on success.
        """
        self.cancel_autosave(note.id)
        snapshot = note.model_copy()
        previous = self._inflight.get(note.id)
        task = asyncio.create_task(
            self._write(snapshot, trigger, notify, previous), name=f"save:{note.id}"
        )
        self._inflight[note.id] = task
        task.add_done_callback(lambda t, note_id=note.id: self._forget(note_id, t))
        return task

    async def save(self, note: Note, trigger: SaveTrigger, notify: bool = False) -> bool:
        """Issue a write and wait for it. Cancelling the caller does not cancel the write."""
        return await asyncio.shield(self.issue(note, trigger, notify))

    async def wait_for(self, note_id: str) -> None:
        """Wait for the writes already issued for one note."""
        task = self._inflight.get(note_id)
        if task is not None:
            await asyncio.wait([task])

    async def drain(self) -> None:
        """Wait for every write issued so far."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()))

    async def save_folders(self, folders_saver: Callback) -> bool:
        """Run a full folder-collection save, reporting failure via status."""
        try:
            await folders_saver()
        except BackendError as e:
            logger.error("Failed to save folders: %s", e)
            self._folders_failed = True
            self._status.set(SaveStatus.ERROR)
            return False
        self._folders_failed = False
        if self._status.status is SaveStatus.ERROR and not self.has_failures:
            self._status.set(SaveStatus.IDLE)
        return True

    def forget_failure(self, note_id: str) -> None:
        """Stop tracking a failed write for a note that no longer exists."""
        self._failed.discard(note_id)

    def _forget(self, note_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(note_id) is task:
            del self._inflight[note_id]

    async def _write(
        self,
        note: Note,
        trigger: SaveTrigger,
        notify: bool,
        previous: Optional[asyncio.Task],
    ) -> bool:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        if notify:
            self._status.set(SaveStatus.SAVING)

        start = time.perf_counter()
        try:
            await self._backend.save_note(note)
        except Exception as e:
            logger.error("Failed to save note %s: %s", note.id, e)
            NOTE_SAVES.labels(trigger=trigger.value, status="error").inc()
            self._failed.add(note.id)
            self._status.set(SaveStatus.ERROR)
            return False
        finally:
            SAVE_DURATION.labels(trigger=trigger.value).observe(time.perf_counter() - start)

        NOTE_SAVES.labels(trigger=trigger.value, status="success").inc()
        self._failed.discard(note.id)
        if self.has_failures:
            # Another note's last write failed; keep that visible.
            self._status.set(SaveStatus.ERROR)
        elif notify:
            self._status.set(SaveStatus.SAVED)
            logger.info("Saved note %s", note.id)
        elif self._status.status in (SaveStatus.SAVING, SaveStatus.ERROR):
            self._status.set(SaveStatus.IDLE)
        return True
