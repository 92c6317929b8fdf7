"""Read-only projection of subjects for the data viewer."""

from datetime import date, datetime

from app.models.subject import Subject
from app.services.components import COMPLETION_STEP
from app.services.record_store import RecordStore

EMPTY = "—"


def status_label(subject: Subject) -> str:
    if subject.completed:
        return "Completed"
    return f"Step {subject.current_step} of {COMPLETION_STEP - 1}"


def format_address(subject: Subject) -> str:
    parts = [subject.street_address, subject.city, subject.state, subject.zip]
    parts = [p for p in parts if p]
    return ", ".join(parts) if parts else EMPTY


def format_birthdate(value: date | None) -> str:
    return value.strftime("%b %d, %Y") if value else EMPTY


def format_timestamp(value: datetime | None) -> str:
    return value.strftime("%b %d, %Y %H:%M") if value else EMPTY


def project(subject: Subject) -> dict:
    return {
        "id": subject.id,
        "email": subject.email,
        "status_label": status_label(subject),
        "current_step": subject.current_step,
        "completed": subject.completed,
        "about_me": subject.about_me or EMPTY,
        "address": format_address(subject),
        "birthdate": format_birthdate(subject.birthdate),
        "created": format_timestamp(subject.created_at),
        "updated": format_timestamp(subject.updated_at),
    }


async def list_subject_rows(store: RecordStore) -> list[dict]:
    """All subjects, newest first."""
    return [project(s) for s in await store.list_subjects()]
