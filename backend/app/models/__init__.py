"""Aggregate model imports for Alembic auto-detection."""

from app.models.subject import Subject  # noqa: F401
from app.models.step_config import StepAssignment  # noqa: F401
