"""Step configuration router: which components appear on which page.

Endpoints:
    GET   /api/admin/step-config               Current configuration + page preview
    PATCH /api/admin/step-config/{component}   Move one component, then save
    PUT   /api/admin/step-config               Save a full configuration
    POST  /api/admin/step-config/reset         Default configuration (?save=true persists it)

Every save is validated in full before anything is written: each page
keeps at least one component and every component sits on some page.
Pass `expected_version` to reject the save if someone else committed
in between.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_admin
from app.database import get_db
from app.schemas.config import (
    AssignmentOut,
    ComponentPageUpdate,
    PagePreview,
    StepConfigOut,
    StepConfigUpdate,
)
from app.services.components import DYNAMIC_PAGES, REGISTRY, ComponentType
from app.services.record_store import RecordStore
from app.services.step_config import Assignment, ConfigurationDraft, StepConfigStore

router = APIRouter()


def _make_config_out(
    assignments: list[Assignment],
    version: int,
    persisted: bool = True,
) -> StepConfigOut:
    return StepConfigOut(
        version=version,
        pages=list(DYNAMIC_PAGES),
        assignments=[
            AssignmentOut(
                component_type=a.component.value,
                label=REGISTRY[a.component].label,
                description=REGISTRY[a.component].description,
                page_number=a.page,
            )
            for a in assignments
        ],
        preview=[
            PagePreview(
                page_number=page,
                components=[REGISTRY[a.component].label for a in assignments if a.page == page],
                is_empty=not any(a.page == page for a in assignments),
            )
            for page in DYNAMIC_PAGES
        ],
        persisted=persisted,
    )


# ── GET ──────────────────────────────────────────────────────

@router.get("/step-config", response_model=StepConfigOut)
async def get_configuration(
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    snapshot = await StepConfigStore(RecordStore(db)).snapshot()
    return _make_config_out(list(snapshot.assignments), snapshot.version)


# ── PATCH one component ──────────────────────────────────────

@router.patch("/step-config/{component}", response_model=StepConfigOut)
async def set_component_page(
    component: ComponentType,
    body: ComponentPageUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    """Reassign one component and save the resulting configuration."""
    config = StepConfigStore(RecordStore(db))
    snapshot = await config.snapshot()
    draft = ConfigurationDraft(snapshot.assignments)
    draft.set_page(component, body.page_number)

    expected = body.expected_version if body.expected_version is not None else snapshot.version
    saved = await config.commit(draft.assignments, expected_version=expected)
    return _make_config_out(list(saved.assignments), saved.version)


# ── PUT full configuration ───────────────────────────────────

@router.put("/step-config", response_model=StepConfigOut)
async def save_configuration(
    body: StepConfigUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    config = StepConfigStore(RecordStore(db))
    saved = await config.commit(
        [Assignment(a.component_type, a.page_number) for a in body.assignments],
        expected_version=body.expected_version,
    )
    return _make_config_out(list(saved.assignments), saved.version)


# ── POST reset ───────────────────────────────────────────────

@router.post("/step-config/reset", response_model=StepConfigOut)
async def reset_defaults(
    save: bool = False,
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    """Return the default configuration; persist it only with ?save=true."""
    config = StepConfigStore(RecordStore(db))
    snapshot = await config.snapshot()
    draft = ConfigurationDraft(snapshot.assignments)
    draft.reset_to_defaults()

    if not save:
        return _make_config_out(draft.assignments, snapshot.version, persisted=False)

    saved = await config.commit(draft.assignments, expected_version=snapshot.version)
    return _make_config_out(list(saved.assignments), saved.version)
