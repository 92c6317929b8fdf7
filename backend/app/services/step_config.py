"""Step configuration: which component renders on which dynamic page.

StepConfigStore is the only way anything reads or writes the `step_config`
table. Every read goes to the database, so a commit is visible to the very
next page render in any session. Proposed configurations are validated in
full before a single row is written:

  - every page number is one of the dynamic pages
  - every registered component is assigned exactly once
  - every dynamic page keeps at least one component

ConfigurationDraft is the admin's in-memory working copy; nothing it does
touches the store until the caller commits it.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from app.middleware.exceptions import ConfigurationInvariantError, InvalidPageError
from app.services.components import (
    DYNAMIC_PAGES,
    REGISTRY,
    ComponentType,
    default_assignments,
    ordered_components,
)
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    component: ComponentType
    page: int


@dataclass(frozen=True)
class ConfigSnapshot:
    assignments: tuple[Assignment, ...]
    version: int

    def components_on(self, page: int) -> list[ComponentType]:
        return [a.component for a in self.assignments if a.page == page]

    def by_page(self) -> dict[int, list[ComponentType]]:
        return {page: self.components_on(page) for page in DYNAMIC_PAGES}


def _sorted(assignments: Iterable[Assignment]) -> tuple[Assignment, ...]:
    return tuple(sorted(assignments, key=lambda a: a.component.value))


def check_page(page: int) -> int:
    if page not in DYNAMIC_PAGES:
        raise InvalidPageError(page, list(DYNAMIC_PAGES))
    return page


def validate_assignments(assignments: Iterable[Assignment]) -> dict[ComponentType, int]:
    """Check a full proposed configuration. Returns component → page.

    Raises InvalidPageError or ConfigurationInvariantError; never writes.
    """
    pages: dict[ComponentType, int] = {}
    for a in assignments:
        check_page(a.page)
        if a.component in pages:
            raise ConfigurationInvariantError(
                f"{REGISTRY[a.component].label} is assigned more than once"
            )
        pages[a.component] = a.page

    for component in ordered_components():
        if component not in pages:
            raise ConfigurationInvariantError(
                f"{REGISTRY[component].label} must be assigned to a page"
            )

    for page in DYNAMIC_PAGES:
        if page not in pages.values():
            raise ConfigurationInvariantError(
                f"Page {page} must have at least one component", page=page
            )
    return pages


class StepConfigStore:

    def __init__(self, store: RecordStore):
        self.store = store

    async def snapshot(self) -> ConfigSnapshot:
        rows = await self.store.list_step_assignments()
        assignments = []
        version = 0
        for row in rows:
            version = max(version, row.version)
            try:
                component = ComponentType(row.component_type)
            except ValueError:
                logger.warning("Ignoring unknown component in step_config: %s", row.component_type)
                continue
            assignments.append(Assignment(component, row.page_number))
        return ConfigSnapshot(_sorted(assignments), version)

    async def list_assignments(self) -> list[Assignment]:
        """Current assignments, ordered by component identifier."""
        return list((await self.snapshot()).assignments)

    async def commit(
        self,
        assignments: Iterable[Assignment],
        expected_version: int | None = None,
    ) -> ConfigSnapshot:
        """Validate then persist a full configuration, all-or-nothing.

        On any failure the previously committed configuration is left
        exactly as it was.
        """
        assignments = list(assignments)
        try:
            pages = validate_assignments(assignments)
        except (ConfigurationInvariantError, InvalidPageError) as exc:
            logger.info("Rejected step configuration: %s", exc.message)
            raise

        version = await self.store.write_step_assignments(
            {component.value: page for component, page in pages.items()},
            expected_version=expected_version,
        )
        logger.info(
            "Committed step configuration v%d: %s",
            version,
            ", ".join(f"{c.value}→{p}" for c, p in sorted(pages.items(), key=lambda i: i[0].value)),
        )
        return ConfigSnapshot(
            _sorted(Assignment(c, p) for c, p in pages.items()),
            version,
        )

    async def seed_defaults(self) -> int:
        """Insert the default assignment for any component that has none."""
        added = await self.store.insert_missing_step_assignments(
            {c.value: page for c, page in default_assignments().items()}
        )
        if added:
            logger.info("Seeded %d default step assignment(s)", added)
        return added


class ConfigurationDraft:
    """In-memory working copy of the configuration for the admin surface."""

    def __init__(self, assignments: Iterable[Assignment] = ()):
        self._pages: dict[ComponentType, int] = {a.component: a.page for a in assignments}

    @classmethod
    def defaults(cls) -> "ConfigurationDraft":
        return cls(Assignment(c, p) for c, p in default_assignments().items())

    @property
    def assignments(self) -> list[Assignment]:
        return list(_sorted(Assignment(c, p) for c, p in self._pages.items()))

    def set_page(self, component: ComponentType, page: int) -> None:
        self._pages[ComponentType(component)] = check_page(page)

    def reset_to_defaults(self) -> None:
        self._pages = dict(default_assignments())
