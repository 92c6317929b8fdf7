from pydantic import BaseModel, EmailStr

from app.schemas.wizard import WizardView


# ── Identity step ────────────────────────────────────────────

class IdentityRequest(BaseModel):
    """Sign in, or create an account when the email is new."""
    email: EmailStr
    password: str
    confirm_password: str | None = None   # required for new accounts only


class IdentityResponse(BaseModel):
    subject_id: str
    session_token: str
    token_type: str = "bearer"
    created: bool
    wizard: WizardView


class EmailStatus(BaseModel):
    email: str
    exists: bool
