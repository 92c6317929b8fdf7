"""Validate and persist one dynamic wizard page.

Only the components resolved for the page are checked and written. A
component that lives on another page contributes nothing here: its fields
are neither required nor saved, whatever the draft holds for them.
"""

import logging
from typing import Any

from app.middleware.exceptions import StepValidationError
from app.services.components import REGISTRY, ComponentType
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def validate_page(components: list[ComponentType], draft: dict[str, Any]) -> dict[str, Any]:
    """Return the cleaned values owned by `components`.

    Raises StepValidationError mapping every failing sub-field key to
    its message; the draft itself is never modified.
    """
    values: dict[str, Any] = {}
    errors: dict[str, str] = {}

    for component in components:
        for field in REGISTRY[component].fields:
            raw = draft.get(field.key)
            if _is_blank(raw):
                if field.required:
                    errors[field.key] = field.message
                values[field.key] = None
                continue
            try:
                values[field.key] = field.parse(raw)
            except ValueError:
                errors[field.key] = field.invalid or field.message

    if errors:
        raise StepValidationError(errors)
    return values


class DynamicStepProcessor:
    """Validate a page's draft, then write it and the step reached."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def submit(
        self,
        subject_id: str,
        page: int,
        components: list[ComponentType],
        draft: dict[str, Any],
    ) -> dict[str, Any]:
        values = validate_page(components, draft)
        await self.store.update_subject_progress(subject_id, values, page)
        logger.info(
            "Subject %s saved page %d (%s)",
            subject_id,
            page,
            ", ".join(c.value for c in components),
        )
        return values
