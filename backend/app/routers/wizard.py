"""Onboarding wizard: dynamic pages driven by the step configuration.

Endpoints:
  GET  /api/wizard/                    → resume from the session token
  GET  /api/wizard/pages/{page}        → render model for a reachable page
  POST /api/wizard/pages/{page}        → validate + save a page, then advance
  POST /api/wizard/pages/{page}/back   → previous page, nothing saved
  POST /api/wizard/restart             → leave the completion screen

Design:
  - The bearer session token is the only client-side state. Each request
    rebuilds a WizardStateMachine from it and applies one transition.
  - Which components a page shows is resolved on every request, so admin
    changes apply to the next page a subject opens.
  - A token that no longer resolves is never an error on GET /: the
    response says `state=identity, session_cleared=true` instead.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_session, session_pointer
from app.database import get_db
from app.middleware.exceptions import SessionResolutionError
from app.schemas.wizard import ComponentView, PageValues, SubFieldView, WizardView
from app.services.components import REGISTRY
from app.services.record_store import RecordStore
from app.services.wizard_machine import SessionPointer, WizardStage, WizardStateMachine

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def make_view(machine: WizardStateMachine) -> WizardView:
    """Build a WizardView response from the machine's current state."""
    components: list[ComponentView] = []
    if machine.stage is WizardStage.DYNAMIC:
        for component in await machine.components():
            spec = REGISTRY[component]
            components.append(ComponentView(
                type=component.value,
                label=spec.label,
                fields=[
                    SubFieldView(
                        key=f.key,
                        label=f.label,
                        kind=f.kind.value,
                        required=f.required,
                        value=machine.draft.get(f.key),
                    )
                    for f in spec.fields
                ],
            ))

    return WizardView(
        state=machine.stage.value,
        current_step=machine.step,
        total_steps=len(machine.all_steps),
        subject_id=machine.subject_id,
        completed=machine.completed,
        reachable_pages=machine.reachable_pages(),
        can_go_back=(
            machine.stage is WizardStage.DYNAMIC and machine.step != machine.pages[0]
        ),
        components=components,
        values=dict(machine.draft),
        session_cleared=machine.pointer.cleared,
    )


async def _resume(db: AsyncSession, subject_id: str) -> WizardStateMachine:
    """Resume a machine for an authenticated request; 401 if the subject is gone."""
    machine = WizardStateMachine(RecordStore(db), SessionPointer(subject_id))
    await machine.resume()
    if machine.pointer.cleared:
        raise SessionResolutionError()
    return machine


# ── GET /api/wizard/ ─────────────────────────────────────────

@router.get("/", response_model=WizardView)
async def get_progress(
    db: AsyncSession = Depends(get_db),
    pointer: SessionPointer = Depends(session_pointer),
):
    machine = WizardStateMachine(RecordStore(db), pointer)
    await machine.resume()
    if not pointer.subject_id and not pointer.cleared:
        # No token at all: still tell the client there is nothing to keep
        pointer.clear()
    return await make_view(machine)


# ── Dynamic pages ────────────────────────────────────────────

@router.get("/pages/{page}", response_model=WizardView)
async def get_page(
    page: int,
    db: AsyncSession = Depends(get_db),
    subject_id: str = Depends(require_session),
):
    """Render model for a dynamic page: components, labels, saved values."""
    machine = await _resume(db, subject_id)
    machine.open_page(page)
    return await make_view(machine)


@router.post("/pages/{page}", response_model=WizardView)
async def save_page(
    page: int,
    body: PageValues,
    db: AsyncSession = Depends(get_db),
    subject_id: str = Depends(require_session),
):
    """Validate the page's resolved components and persist them.

    On success the response is the next page (or the completion screen).
    Validation errors come back as 422 with per-field messages; store
    failures as 503, with nothing saved and the step unchanged.
    """
    machine = await _resume(db, subject_id)
    machine.open_page(page)
    await machine.submit(body.model_dump(exclude_unset=True))
    return await make_view(machine)


@router.post("/pages/{page}/back", response_model=WizardView)
async def go_back(
    page: int,
    db: AsyncSession = Depends(get_db),
    subject_id: str = Depends(require_session),
):
    machine = await _resume(db, subject_id)
    machine.open_page(page)
    machine.back()
    return await make_view(machine)


# ── POST /api/wizard/restart ─────────────────────────────────

@router.post("/restart", response_model=WizardView)
async def restart(
    db: AsyncSession = Depends(get_db),
    subject_id: str = Depends(require_session),
):
    """Leave the completion screen. The subject record is not touched."""
    machine = await _resume(db, subject_id)
    machine.restart()
    return await make_view(machine)
