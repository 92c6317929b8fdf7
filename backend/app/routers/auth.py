"""Identity routes: the wizard's first step.

Route overview:
  POST /              sign in, or create an account for a new email
  GET  /email-status  does an account exist for this email?
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import create_session_token
from app.database import get_db
from app.routers.wizard import make_view
from app.schemas.auth import EmailStatus, IdentityRequest, IdentityResponse
from app.services.identity import IdentityStep, normalize_email
from app.services.record_store import RecordStore
from app.services.wizard_machine import SessionPointer, WizardStateMachine

router = APIRouter()


# ── POST / ───────────────────────────────────────────────────

@router.post("/", response_model=IdentityResponse)
async def submit_identity(
    body: IdentityRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Sign in or sign up, returning the session token and where to resume.

    Existing accounts resume at their saved step (or completion); new
    accounts start on the first dynamic page and get a 201.
    """
    pointer = SessionPointer()
    machine = WizardStateMachine(RecordStore(db), pointer)
    result = await machine.authenticate(body.email, body.password, body.confirm_password)

    if result.created:
        response.status_code = status.HTTP_201_CREATED
    return IdentityResponse(
        subject_id=result.subject.id,
        session_token=create_session_token(result.subject.id),
        created=result.created,
        wizard=await make_view(machine),
    )


# ── GET /email-status ────────────────────────────────────────

@router.get("/email-status", response_model=EmailStatus)
async def email_status(
    email: str = Query(..., min_length=3),
    db: AsyncSession = Depends(get_db),
):
    """Lets the client show the confirm-password field only for new accounts."""
    exists = await IdentityStep(RecordStore(db)).email_exists(email)
    return EmailStatus(email=normalize_email(email), exists=exists)
