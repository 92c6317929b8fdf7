"""Tests for the wizard state machine: navigation, resume and completion."""

import pytest

from app.middleware.exceptions import (
    InvalidPageError,
    StepValidationError,
    StoreUnavailableError,
    WizardTransitionError,
)
from app.models.subject import Subject
from app.services.components import ComponentType
from app.services.record_store import RecordStore
from app.services.step_config import Assignment, StepConfigStore
from app.services.wizard_machine import SessionPointer, WizardStage, WizardStateMachine

PAGE_2 = {
    "about_me": "Gardener",
    "street_address": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip": "62701",
}


async def _signed_up(store: RecordStore) -> WizardStateMachine:
    machine = WizardStateMachine(store, SessionPointer())
    await machine.authenticate("new@example.com", "hunter22", "hunter22")
    return machine


async def _resumed(store: RecordStore, subject_id: str) -> WizardStateMachine:
    machine = WizardStateMachine(store, SessionPointer(subject_id))
    await machine.resume()
    return machine


@pytest.mark.unit
@pytest.mark.asyncio
class TestWizardFlow:

    async def test_starts_at_identity(self, store: RecordStore):
        machine = WizardStateMachine(store, SessionPointer())
        assert await machine.resume() == 1
        assert machine.stage is WizardStage.IDENTITY
        assert machine.reachable_pages() == []

    async def test_sign_up_enters_first_page(self, store: RecordStore):
        machine = await _signed_up(store)
        assert machine.stage is WizardStage.DYNAMIC
        assert machine.step == 2
        assert machine.pointer.subject_id == machine.subject_id
        assert machine.reachable_pages() == [2]
        assert await machine.components() == [ComponentType.ABOUT_ME, ComponentType.ADDRESS]

    async def test_full_walkthrough(self, store: RecordStore):
        machine = await _signed_up(store)
        await machine.submit(PAGE_2)
        assert machine.step == 3
        assert machine.reachable_pages() == [2, 3]

        await machine.submit({"birthdate": "1990-05-01"})
        assert machine.stage is WizardStage.COMPLETION

        subject = await store.get_subject(machine.subject_id)
        assert subject.completed is True
        assert subject.current_step == 4
        assert subject.about_me == "Gardener"

    async def test_cannot_skip_ahead(self, store: RecordStore):
        machine = await _signed_up(store)
        with pytest.raises(WizardTransitionError):
            machine.open_page(3)

    async def test_invalid_page(self, store: RecordStore):
        machine = await _signed_up(store)
        with pytest.raises(InvalidPageError):
            machine.open_page(4)

    async def test_validation_error_keeps_step_and_draft(self, store: RecordStore):
        machine = await _signed_up(store)
        with pytest.raises(StepValidationError) as exc:
            await machine.submit({"about_me": "Gardener", "city": "Springfield"})

        assert set(exc.value.fields) == {"street_address", "state", "zip"}
        assert machine.step == 2
        assert machine.draft["city"] == "Springfield"

    async def test_store_failure_does_not_advance(self, store: RecordStore, monkeypatch):
        machine = await _signed_up(store)

        async def failing_update(*args, **kwargs):
            raise StoreUnavailableError()

        monkeypatch.setattr(store, "update_subject_progress", failing_update)
        with pytest.raises(StoreUnavailableError):
            await machine.submit(PAGE_2)

        assert machine.step == 2
        assert machine.saved_step == 1
        assert machine.draft["about_me"] == "Gardener"

        monkeypatch.undo()
        subject = await store.get_subject(machine.subject_id)
        assert subject.current_step == 1
        assert subject.about_me is None

    async def test_back_then_resubmit(self, store: RecordStore):
        machine = await _signed_up(store)
        await machine.submit(PAGE_2)
        machine.back()
        assert machine.step == 2
        assert machine.draft["city"] == "Springfield"

        await machine.submit({"city": "Shelbyville"})
        assert machine.step == 3
        subject = await store.get_subject(machine.subject_id)
        assert subject.city == "Shelbyville"

    async def test_no_back_from_first_page(self, store: RecordStore):
        machine = await _signed_up(store)
        with pytest.raises(WizardTransitionError):
            machine.back()
        assert machine.step == 2

    async def test_reassignment_applies_to_next_page(self, store: RecordStore):
        machine = await _signed_up(store)
        await machine.submit(PAGE_2)

        await StepConfigStore(store).commit([
            Assignment(ComponentType.ABOUT_ME, 2),
            Assignment(ComponentType.ADDRESS, 3),
            Assignment(ComponentType.BIRTHDATE, 3),
        ])

        assert await machine.components() == [ComponentType.ADDRESS, ComponentType.BIRTHDATE]


@pytest.mark.unit
@pytest.mark.asyncio
class TestResume:

    async def test_new_subject_resumes_at_first_page(self, store: RecordStore, test_subject: Subject):
        machine = await _resumed(store, test_subject.id)
        assert machine.step == 2

    async def test_resumes_at_saved_step(self, store: RecordStore):
        first = await _signed_up(store)
        await first.submit(PAGE_2)

        machine = await _resumed(store, first.subject_id)
        assert machine.stage is WizardStage.DYNAMIC
        assert machine.saved_step == 2
        assert machine.reachable_pages() == [2, 3]
        assert machine.draft["zip"] == "62701"

    async def test_completed_subject_resumes_at_completion(self, store: RecordStore):
        first = await _signed_up(store)
        await first.submit(PAGE_2)
        await first.submit({"birthdate": "1990-05-01"})

        machine = await _resumed(store, first.subject_id)
        assert machine.stage is WizardStage.COMPLETION
        with pytest.raises(WizardTransitionError):
            machine.open_page(2)

    async def test_sign_in_again_resumes(self, store: RecordStore):
        first = await _signed_up(store)
        await first.submit(PAGE_2)

        machine = WizardStateMachine(store, SessionPointer())
        result = await machine.authenticate("new@example.com", "hunter22")
        assert result.created is False
        assert machine.step == 2
        assert machine.reachable_pages() == [2, 3]

    async def test_stale_pointer_discarded(self, store: RecordStore):
        pointer = SessionPointer("no-such-subject")
        machine = WizardStateMachine(store, pointer)
        await machine.resume()

        assert machine.stage is WizardStage.IDENTITY
        assert pointer.cleared is True
        assert pointer.subject_id is None

    async def test_unreachable_store_discards_pointer(self, store: RecordStore, test_subject: Subject, monkeypatch):
        subject_id = test_subject.id

        async def failing_get(*args, **kwargs):
            raise StoreUnavailableError()

        monkeypatch.setattr(store, "get_subject", failing_get)
        pointer = SessionPointer(subject_id)
        machine = WizardStateMachine(store, pointer)
        await machine.resume()

        assert machine.stage is WizardStage.IDENTITY
        assert pointer.cleared is True


@pytest.mark.unit
@pytest.mark.asyncio
class TestRestart:

    async def test_restart_clears_pointer_only(self, store: RecordStore):
        machine = await _signed_up(store)
        subject_id = machine.subject_id
        await machine.submit(PAGE_2)
        await machine.submit({"birthdate": "1990-05-01"})

        machine.restart()
        assert machine.stage is WizardStage.IDENTITY
        assert machine.pointer.cleared is True

        again = await _resumed(store, subject_id)
        assert again.stage is WizardStage.COMPLETION
        assert again.draft["birthdate"] == "1990-05-01"

    async def test_restart_requires_completion(self, store: RecordStore):
        machine = await _signed_up(store)
        with pytest.raises(WizardTransitionError):
            machine.restart()

    async def test_authenticate_only_from_identity(self, store: RecordStore):
        machine = await _signed_up(store)
        with pytest.raises(WizardTransitionError):
            await machine.authenticate("new@example.com", "hunter22")
