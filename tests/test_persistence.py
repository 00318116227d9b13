"""Unit tests for scratchpad.persistence: sequenced writes and autosave slot."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeBackend, make_note
from scratchpad.models import Tab
from scratchpad.backend import BackendError
from scratchpad.persistence import PersistenceCoordinator, SaveTrigger, apply_tab
from scratchpad.status import SaveStatus, StatusIndicator


def _make(backend: FakeBackend, autosave_delay: float = 0.03) -> PersistenceCoordinator:
    return PersistenceCoordinator(backend, StatusIndicator(revert_delay=0.05), autosave_delay)


class TestApplyTab:
    def test_copies_fields_and_bumps_updated_at(self):
        note = make_note("n", "Old", "old")
        apply_tab(note, Tab(id="n", title="New", content="new"))
        assert (note.title, note.content) == ("New", "new")
        assert note.updated_at > 1

    def test_updated_at_strictly_increases(self):
        note = make_note("n")
        note.updated_at = 10**15  # far future
        apply_tab(note, Tab(id="n", title="t", content="c"))
        assert note.updated_at == 10**15 + 1


class TestWrites:
    @pytest.mark.asyncio
    async def test_save_writes_snapshot_at_issue_time(self):
        backend = FakeBackend()
        coordinator = _make(backend)
        note = make_note("n", content="v1")

        task = coordinator.issue(note, SaveTrigger.NAVIGATION)
        note.content = "v2"
        assert await task is True

        assert backend.notes["n"].content == "v1"

    @pytest.mark.asyncio
    async def test_same_note_writes_are_chained(self):
        backend = FakeBackend()
        backend.save_delay = 0.02
        coordinator = _make(backend)
        note = make_note("n")

        for i in range(3):
            note.content = f"v{i}"
            coordinator.issue(note, SaveTrigger.NAVIGATION)
        await coordinator.drain()

        assert [n.content for n in backend.saved] == ["v0", "v1", "v2"]
        assert backend.notes["n"].content == "v2"
        assert backend.max_concurrent_saves["n"] == 1
        assert coordinator.inflight == 0

    @pytest.mark.asyncio
    async def test_explicit_save_flashes_status(self):
        coordinator = _make(FakeBackend())
        assert await coordinator.save(make_note("n"), SaveTrigger.EXPLICIT, notify=True)
        assert coordinator._status.status is SaveStatus.SAVED

    @pytest.mark.asyncio
    async def test_failure_sets_error_without_retry(self):
        backend = FakeBackend()
        backend.fail.add("save_note")
        coordinator = _make(backend)

        assert await coordinator.save(make_note("n"), SaveTrigger.AUTOSAVE) is False

        assert coordinator._status.status is SaveStatus.ERROR
        assert len(backend.saved) == 1

    @pytest.mark.asyncio
    async def test_silent_success_clears_pending_marker(self):
        coordinator = _make(FakeBackend())
        coordinator._status.set(SaveStatus.SAVING)
        await coordinator.save(make_note("n"), SaveTrigger.AUTOSAVE)
        assert coordinator._status.status is SaveStatus.IDLE

    @pytest.mark.asyncio
    async def test_save_folders_failure(self):
        coordinator = _make(FakeBackend())

        async def failing():
            raise BackendError("save_folders", "boom")

        assert await coordinator.save_folders(failing) is False
        assert coordinator._status.status is SaveStatus.ERROR


class TestAutosaveSlot:
    @pytest.mark.asyncio
    async def test_issue_cancels_pending_autosave_for_same_note(self):
        fired = []

        async def autosave():
            fired.append(True)

        coordinator = _make(FakeBackend())
        coordinator.schedule_autosave("n", autosave)
        coordinator.issue(make_note("n"), SaveTrigger.EXPLICIT)
        await asyncio.sleep(0.08)

        assert fired == []

    @pytest.mark.asyncio
    async def test_issue_for_other_note_keeps_autosave(self):
        fired = []

        async def autosave():
            fired.append(True)

        coordinator = _make(FakeBackend())
        coordinator.schedule_autosave("n", autosave)
        coordinator.issue(make_note("other"), SaveTrigger.NAVIGATION)
        await asyncio.sleep(0.08)

        assert fired == [True]


class TestFailureTracking:
    @pytest.mark.asyncio
    async def test_other_note_success_keeps_error(self):
        backend = FakeBackend()
        coordinator = _make(backend)
        backend.fail.add("save_note")
        assert await coordinator.save(make_note("a"), SaveTrigger.NAVIGATION) is False
        backend.fail.clear()

        assert await coordinator.save(make_note("b"), SaveTrigger.AUTOSAVE) is True
        assert coordinator._status.status is SaveStatus.ERROR
        assert coordinator.failed == {"a"}

        assert await coordinator.save(make_note("a"), SaveTrigger.INTERVAL) is True
        assert coordinator._status.status is SaveStatus.IDLE
        assert not coordinator.has_failures

    @pytest.mark.asyncio
    async def test_explicit_save_of_other_note_reports_error(self):
        backend = FakeBackend()
        coordinator = _make(backend)
        backend.fail.add("save_note")
        await coordinator.save(make_note("a"), SaveTrigger.NAVIGATION)
        backend.fail.clear()

        assert await coordinator.save(make_note("b"), SaveTrigger.EXPLICIT, notify=True)
        assert coordinator._status.status is SaveStatus.ERROR

    @pytest.mark.asyncio
    async def test_forget_failure(self):
        backend = FakeBackend()
        coordinator = _make(backend)
        backend.fail.add("save_note")
        await coordinator.save(make_note("a"), SaveTrigger.NAVIGATION)
        backend.fail.clear()

        coordinator.forget_failure("a")
        await coordinator.save(make_note("b"), SaveTrigger.AUTOSAVE)

        assert coordinator._status.status is SaveStatus.IDLE

    @pytest.mark.asyncio
    async def test_folder_failure_kept_until_folders_save(self):
        coordinator = _make(FakeBackend())

        async def failing():
            raise BackendError("save_folders", "boom")

        async def ok():
            return None

        await coordinator.save_folders(failing)
        await coordinator.save(make_note("b"), SaveTrigger.AUTOSAVE)
        assert coordinator._status.status is SaveStatus.ERROR

        assert await coordinator.save_folders(ok) is True
        assert coordinator._status.status is SaveStatus.IDLE
