"""Wizard state machine: identity → dynamic pages → completion.

States:
  identity     step 1, no subject yet
  dynamic      one of the configurable pages (2, 3, … from the registry)
  completion   terminal screen; the subject is marked completed

Transitions:
  identity  → dynamic     authenticate() succeeds (enters the resume page)
  dynamic n → dynamic n+1 submit() validates and persists page n
  last page → completion  submit() on the final page, then mark completed
  dynamic n → dynamic n-1 back(), not from the first dynamic page
  completion → identity   restart(), clears the session pointer only

The machine is cheap to rebuild: an HTTP request constructs one, resumes
from the session pointer and applies a single transition. All state that
outlives the request is in the record store or the pointer.
"""

import enum
import logging
from collections.abc import Sequence
from typing import Any

from app.middleware.exceptions import (
    InvalidPageError,
    SessionResolutionError,
    StoreUnavailableError,
    WizardTransitionError,
)
from app.models.subject import Subject
from app.services.components import DYNAMIC_PAGES, SUBJECT_FIELDS, ComponentType
from app.services.identity import IdentityResult, IdentityStep
from app.services.record_store import RecordStore
from app.services.step_config import StepConfigStore
from app.services.step_resolver import StepResolver
from app.services.step_validator import DynamicStepProcessor

logger = logging.getLogger(__name__)


class WizardStage(str, enum.Enum):
    IDENTITY = "identity"
    DYNAMIC = "dynamic"
    COMPLETION = "completion"


class SessionPointer:
    """The client-held continuation token: one opaque subject ID.

    Clearing it loses nothing server-side, only the client's way back
    to the subject.
    """

    def __init__(self, subject_id: str | None = None):
        self.subject_id = subject_id
        self.cleared = False

    def store(self, subject_id: str) -> None:
        self.subject_id = subject_id
        self.cleared = False

    def clear(self) -> None:
        self.subject_id = None
        self.cleared = True


def _draft_from(subject: Subject) -> dict[str, Any]:
    draft = {}
    for key in SUBJECT_FIELDS:
        value = getattr(subject, key)
        draft[key] = value.isoformat() if hasattr(value, "isoformat") else value
    return draft


class WizardStateMachine:

    def __init__(
        self,
        store: RecordStore,
        pointer: SessionPointer,
        pages: Sequence[int] = DYNAMIC_PAGES,
    ):
        if not pages:
            raise ValueError("The wizard needs at least one dynamic page")
        self.store = store
        self.pointer = pointer
        self.pages = list(pages)
        self.identity_step = self.pages[0] - 1
        self.completion_step = self.pages[-1] + 1

        self.resolver = StepResolver(StepConfigStore(store))
        self.processor = DynamicStepProcessor(store)
        self.identity = IdentityStep(store)

        self.step = self.identity_step
        self.subject: Subject | None = None
        self.saved_step = self.identity_step
        self.completed = False
        self.draft: dict[str, Any] = {}

    # ── State ────────────────────────────────────────────────

    @property
    def stage(self) -> WizardStage:
        if self.step == self.identity_step:
            return WizardStage.IDENTITY
        if self.step == self.completion_step:
            return WizardStage.COMPLETION
        return WizardStage.DYNAMIC

    @property
    def subject_id(self) -> str | None:
        return self.subject.id if self.subject else None

    @property
    def all_steps(self) -> list[int]:
        return [self.identity_step, *self.pages, self.completion_step]

    def reachable_pages(self) -> list[int]:
        """Dynamic pages the subject may open: the first, and any whose predecessor is saved."""
        if not self.subject or self.completed:
            return []
        reachable = [self.pages[0]]
        for previous, page in zip(self.pages, self.pages[1:]):
            if previous <= self.saved_step:
                reachable.append(page)
        return reachable

    def _reset(self) -> None:
        self.step = self.identity_step
        self.subject = None
        self.saved_step = self.identity_step
        self.completed = False
        self.draft = {}

    def _entry_step(self) -> int:
        if self.completed:
            return self.completion_step
        return min(max(self.pages[0], self.saved_step), self.pages[-1])

    def _enter(self, subject: Subject) -> None:
        self.subject = subject
        self.saved_step = subject.current_step
        self.completed = subject.completed
        self.draft = _draft_from(subject)
        self.step = self._entry_step()

    def _require(self, stage: WizardStage, action: str) -> None:
        if self.stage is not stage:
            raise WizardTransitionError(f"Cannot {action} from the {self.stage.value} step")

    # ── Transitions ──────────────────────────────────────────

    async def resume(self) -> int:
        """Re-enter the wizard from the session pointer.

        A pointer that no longer resolves (unknown subject, store down)
        is discarded and the wizard starts over at identity.
        """
        subject_id = self.pointer.subject_id
        if not subject_id:
            self._reset()
            return self.step
        try:
            subject = await self.store.get_subject(subject_id)
            if subject is None:
                raise SessionResolutionError(f"Subject {subject_id} not found")
        except (SessionResolutionError, StoreUnavailableError) as exc:
            logger.info("Discarding session pointer %s: %s", subject_id, exc.message)
            self.pointer.clear()
            self._reset()
            return self.step
        self._enter(subject)
        return self.step

    async def authenticate(
        self,
        email: str,
        password: str,
        confirm_password: str | None = None,
    ) -> IdentityResult:
        self._require(WizardStage.IDENTITY, "sign in")
        result = await self.identity.submit(email, password, confirm_password)
        self.pointer.store(result.subject.id)
        self._enter(result.subject)
        return result

    def open_page(self, page: int) -> None:
        """Move to a dynamic page the subject has unlocked."""
        if page not in self.pages:
            raise InvalidPageError(page, self.pages)
        if self.stage is WizardStage.IDENTITY:
            raise WizardTransitionError("Sign in before opening a page")
        if self.completed:
            raise WizardTransitionError("Onboarding is already complete")
        if page not in self.reachable_pages():
            raise WizardTransitionError(f"Complete page {self.pages[self.pages.index(page) - 1]} first")
        self.step = page

    async def components(self) -> list[ComponentType]:
        self._require(WizardStage.DYNAMIC, "render components")
        return await self.resolver.components_for_page(self.step)

    def update_draft(self, values: dict[str, Any]) -> None:
        for key, value in values.items():
            if key in SUBJECT_FIELDS:
                self.draft[key] = value

    async def submit(self, values: dict[str, Any] | None = None) -> list[ComponentType]:
        """Validate and persist the current page, then advance.

        Nothing advances unless the write succeeded; on a validation or
        store error the step stays put and the draft keeps every value.
        """
        self._require(WizardStage.DYNAMIC, "submit")
        if values:
            self.update_draft(values)
        page = self.step
        components = await self.resolver.components_for_page(page)
        saved = await self.processor.submit(self.subject.id, page, components, self.draft)
        self.draft.update(
            {k: v.isoformat() if hasattr(v, "isoformat") else v for k, v in saved.items()}
        )
        self.saved_step = max(self.saved_step, page)

        index = self.pages.index(page)
        if index + 1 < len(self.pages):
            self.step = self.pages[index + 1]
        else:
            await self._complete()
        return components

    async def _complete(self) -> None:
        await self.store.mark_completed(self.subject.id, self.completion_step)
        self.completed = True
        self.saved_step = self.completion_step
        self.step = self.completion_step
        logger.info("Subject %s completed onboarding", self.subject.id)

    def back(self) -> None:
        self._require(WizardStage.DYNAMIC, "go back")
        index = self.pages.index(self.step)
        if index == 0:
            # identity is a one-time gate
            raise WizardTransitionError("Cannot go back from the first page")
        self.step = self.pages[index - 1]

    def restart(self) -> None:
        self._require(WizardStage.COMPLETION, "restart")
        self.pointer.clear()
        self._reset()
