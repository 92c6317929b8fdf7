"""Component registry: the closed set of field groups a wizard page can show.

Each component owns a fixed set of subject columns (its sub-fields) and the
rules that decide whether a page containing it may be saved. Adding a
component means extending ComponentType, REGISTRY and the `users` table
together; nothing is pluggable at runtime.

The wizard's page layout is derived from here too: the dynamic pages are
the distinct default pages of the registered components, the identity step
sits just before them and the completion step just after.
"""

import enum
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any


class ComponentType(str, enum.Enum):
    ABOUT_ME = "about_me"
    ADDRESS = "address"
    BIRTHDATE = "birthdate"


class FieldKind(str, enum.Enum):
    TEXT = "text"
    LONG_TEXT = "long_text"
    DATE = "date"


def _text(raw: Any) -> str:
    return str(raw).strip()


def _iso_date(raw: Any) -> date:
    """YYYY-MM-DD only; anything else raises ValueError."""
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw).strip())


@dataclass(frozen=True)
class SubField:
    key: str          # subject column written by this field
    label: str
    message: str      # shown when a required value is missing
    required: bool = True
    kind: FieldKind = FieldKind.TEXT
    # Turns a non-blank raw value into the stored one; ValueError rejects it
    parse: Callable[[Any], Any] = _text
    invalid: str | None = None


@dataclass(frozen=True)
class ComponentSpec:
    type: ComponentType
    label: str
    description: str
    default_page: int
    fields: tuple[SubField, ...]

    @property
    def field_keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.fields)


REGISTRY: dict[ComponentType, ComponentSpec] = {
    ComponentType.ABOUT_ME: ComponentSpec(
        type=ComponentType.ABOUT_ME,
        label="About Me",
        description="Large text area for user biography",
        default_page=2,
        fields=(
            SubField("about_me", "About Me", "About me is required", kind=FieldKind.LONG_TEXT),
        ),
    ),
    ComponentType.ADDRESS: ComponentSpec(
        type=ComponentType.ADDRESS,
        label="Address Information",
        description="Street address, city, state, and ZIP fields",
        default_page=2,
        fields=(
            SubField("street_address", "Street Address", "Street address is required"),
            SubField("city", "City", "City is required"),
            SubField("state", "State", "State is required"),
            SubField("zip", "ZIP Code", "ZIP code is required"),
        ),
    ),
    ComponentType.BIRTHDATE: ComponentSpec(
        type=ComponentType.BIRTHDATE,
        label="Birth Date",
        description="Date picker for birth date",
        default_page=3,
        fields=(
            SubField(
                "birthdate",
                "Date of Birth",
                "Birthdate is required",
                kind=FieldKind.DATE,
                parse=_iso_date,
                invalid="Date of Birth must be a valid date",
            ),
        ),
    ),
}

_missing = set(ComponentType) - set(REGISTRY)
if _missing:
    raise RuntimeError(f"Unregistered components: {sorted(c.value for c in _missing)}")


def get_component(component: ComponentType | str) -> ComponentSpec:
    """Look up a component by enum member or identifier string.

    Raises ValueError for identifiers outside the closed set.
    """
    return REGISTRY[ComponentType(component)]


def ordered_components() -> list[ComponentType]:
    """All registered components in identifier order."""
    return sorted(REGISTRY, key=lambda c: c.value)


def default_assignments() -> dict[ComponentType, int]:
    return {c: REGISTRY[c].default_page for c in ordered_components()}


# ── Page layout ──────────────────────────────────────────────

DYNAMIC_PAGES: tuple[int, ...] = tuple(sorted({spec.default_page for spec in REGISTRY.values()}))
IDENTITY_STEP: int = DYNAMIC_PAGES[0] - 1
COMPLETION_STEP: int = DYNAMIC_PAGES[-1] + 1

# Every subject column a dynamic page can write
SUBJECT_FIELDS: tuple[str, ...] = tuple(
    key for c in ordered_components() for key in REGISTRY[c].field_keys
)
