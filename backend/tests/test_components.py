"""Tests for the component registry and the page layout derived from it."""

from datetime import date

import pytest

from app.services.components import (
    COMPLETION_STEP,
    DYNAMIC_PAGES,
    IDENTITY_STEP,
    REGISTRY,
    SUBJECT_FIELDS,
    ComponentType,
    FieldKind,
    default_assignments,
    get_component,
    ordered_components,
)


@pytest.mark.unit
class TestRegistry:

    def test_every_component_is_registered(self):
        assert set(REGISTRY) == set(ComponentType)

    def test_lookup_by_identifier(self):
        assert get_component("address").label == "Address Information"
        assert get_component(ComponentType.BIRTHDATE).label == "Birth Date"

    def test_unknown_identifier_rejected(self):
        with pytest.raises(ValueError):
            get_component("phone_number")

    def test_address_owns_four_fields(self):
        assert REGISTRY[ComponentType.ADDRESS].field_keys == (
            "street_address", "city", "state", "zip",
        )

    def test_birthdate_is_a_date_field(self):
        (field,) = REGISTRY[ComponentType.BIRTHDATE].fields
        assert field.kind is FieldKind.DATE
        assert field.message == "Birthdate is required"

    def test_ordered_by_identifier(self):
        assert ordered_components() == [
            ComponentType.ABOUT_ME,
            ComponentType.ADDRESS,
            ComponentType.BIRTHDATE,
        ]


@pytest.mark.unit
class TestPageLayout:

    def test_dynamic_pages(self):
        assert DYNAMIC_PAGES == (2, 3)
        assert IDENTITY_STEP == 1
        assert COMPLETION_STEP == 4

    def test_default_assignments(self):
        assert default_assignments() == {
            ComponentType.ABOUT_ME: 2,
            ComponentType.ADDRESS: 2,
            ComponentType.BIRTHDATE: 3,
        }

    def test_subject_fields_cover_every_component(self):
        assert set(SUBJECT_FIELDS) == {
            "about_me", "street_address", "city", "state", "zip", "birthdate",
        }


@pytest.mark.unit
class TestFieldRules:

    def test_birthdate_parses_iso_dates(self):
        (field,) = REGISTRY[ComponentType.BIRTHDATE].fields
        assert field.parse("1990-05-01") == date(1990, 5, 1)
        assert field.parse(date(2030, 1, 1)) == date(2030, 1, 1)
        with pytest.raises(ValueError):
            field.parse("May 1st")
        assert field.invalid == "Date of Birth must be a valid date"

    def test_text_fields_are_trimmed(self):
        field = REGISTRY[ComponentType.ADDRESS].fields[0]
        assert field.parse("  1 Main St ") == "1 Main St"
        assert field.invalid is None
