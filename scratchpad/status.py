"""Save status indicator."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from scratchpad.timers import Debouncer

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


STATUS_TEXT = {
    SaveStatus.IDLE: "Saved",
    SaveStatus.SAVING: "Saving...",
    SaveStatus.SAVED: "Saved ✓",
    SaveStatus.ERROR: "Error!",
}


class StatusIndicator:
    """Tracks the save status shown to the user.

    ``saved`` is transient: it reverts to ``idle`` after ``revert_delay``
    seconds unless another status is set first.
    """

    def __init__(
        self,
        revert_delay: float = 2.0,
        on_change: Optional[Callable[[SaveStatus], None]] = None,
    ) -> None:
        self._status = SaveStatus.IDLE
        self._revert = Debouncer("status-revert", revert_delay)
        self._on_change = on_change

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def text(self) -> str:
        return STATUS_TEXT[self._status]

    def set(self, status: SaveStatus) -> None:
        self._revert.cancel()
        self._apply(status)
        if status is SaveStatus.SAVED:
            self._revert.schedule(self._revert_to_idle)

    def cancel(self) -> None:
        self._revert.cancel()

    async def _revert_to_idle(self) -> None:
        if self._status is SaveStatus.SAVED:
            self._apply(SaveStatus.IDLE)

    def _apply(self, status: SaveStatus) -> None:
        if status is self._status:
            return
        logger.debug("Save status %s -> %s", self._status.value, status.value)
        self._status = status
        if self._on_change:
            self._on_change(status)
