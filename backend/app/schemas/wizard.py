"""Pydantic schemas for the onboarding wizard.

WizardView is what every wizard endpoint returns: where the subject is,
what the current page shows, and the values saved so far. Field values
travel as a flat mapping keyed by subject column.
"""

from pydantic import BaseModel


# ── Page render model ────────────────────────────────────────

class SubFieldView(BaseModel):
    key: str
    label: str
    kind: str
    required: bool
    value: str | None = None


class ComponentView(BaseModel):
    type: str
    label: str
    fields: list[SubFieldView]


class WizardView(BaseModel):
    state: str                      # identity | dynamic | completion
    current_step: int
    total_steps: int
    subject_id: str | None = None
    completed: bool = False
    reachable_pages: list[int] = []
    can_go_back: bool = False
    components: list[ComponentView] = []
    values: dict[str, str | None] = {}
    # Set when the client must drop its session token
    session_cleared: bool = False


# ── Dynamic page submission ──────────────────────────────────

class PageValues(BaseModel):
    """Draft values for a dynamic page. Fields not on the page are ignored."""
    about_me: str | None = None
    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    birthdate: str | None = None   # ISO YYYY-MM-DD
