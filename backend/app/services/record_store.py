"""Record store: the narrow persistence interface the step engine talks to.

Wraps one AsyncSession and exposes only the reads and writes the wizard,
the identity step and the configuration store need. Every call is bounded
by `settings.store_timeout_seconds`; any database failure or timeout is
rolled back and surfaced as StoreUnavailableError, so callers never see a
half-applied write.

Writes commit immediately: a method that returns normally has persisted
its change.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.middleware.exceptions import (
    ConfigurationConflictError,
    DuplicateAccountError,
    OnboardingException,
    SessionResolutionError,
    StoreUnavailableError,
)
from app.models.step_config import StepAssignment
from app.models.subject import Subject

logger = logging.getLogger(__name__)


class RecordStore:

    def __init__(self, db: AsyncSession, timeout: float | None = None):
        self.db = db
        self.timeout = settings.store_timeout_seconds if timeout is None else timeout

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed")

    @asynccontextmanager
    async def _guard(self, action: str, duplicate_email: str | None = None):
        """Bound a store call in time and translate its failures."""
        try:
            async with asyncio.timeout(self.timeout):
                yield
        except OnboardingException:
            await self._rollback()
            raise
        except IntegrityError as exc:
            await self._rollback()
            if duplicate_email is not None:
                logger.info("Duplicate signup rejected for %s", duplicate_email)
                raise DuplicateAccountError(duplicate_email) from exc
            logger.warning("Record store %s violated a constraint: %s", action, exc)
            raise StoreUnavailableError() from exc
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            await self._rollback()
            logger.warning("Record store %s failed: %s", action, exc)
            raise StoreUnavailableError() from exc

    # ── Subjects ─────────────────────────────────────────────

    async def get_subject(self, subject_id: str) -> Subject | None:
        async with self._guard("load subject"):
            result = await self.db.execute(
                select(Subject)
                .where(Subject.id == subject_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def find_subject_by_email(self, email: str) -> Subject | None:
        async with self._guard("look up subject"):
            result = await self.db.execute(
                select(Subject)
                .where(Subject.email == email)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def insert_subject(self, email: str, password_hash: str, current_step: int) -> Subject:
        """Create a subject. A concurrent signup for the same email raises DuplicateAccountError."""
        subject = Subject(
            email=email,
            password_hash=password_hash,
            current_step=current_step,
            completed=False,
        )
        async with self._guard("insert subject", duplicate_email=email):
            self.db.add(subject)
            await self.db.flush()
            await self.db.commit()
            await self.db.refresh(subject)
        return subject

    async def update_subject_progress(
        self,
        subject_id: str,
        values: dict,
        step: int,
    ) -> None:
        """Write field values and raise current_step to at least `step`.

        current_step never decreases: re-saving an earlier page keeps the
        furthest step reached.
        """
        stmt = (
            update(Subject)
            .where(Subject.id == subject_id)
            .values(
                **values,
                current_step=case(
                    (Subject.current_step < step, step),
                    else_=Subject.current_step,
                ),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        async with self._guard("save step"):
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                raise SessionResolutionError(f"Subject {subject_id} no longer exists")
            await self.db.commit()

    async def mark_completed(self, subject_id: str, completion_step: int) -> None:
        stmt = (
            update(Subject)
            .where(Subject.id == subject_id)
            .values(
                completed=True,
                current_step=completion_step,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        async with self._guard("complete onboarding"):
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                raise SessionResolutionError(f"Subject {subject_id} no longer exists")
            await self.db.commit()

    async def list_subjects(self) -> list[Subject]:
        async with self._guard("list subjects"):
            result = await self.db.execute(
                select(Subject).order_by(Subject.created_at.desc(), Subject.email)
            )
            return list(result.scalars().all())

    # ── Step configuration ───────────────────────────────────

    async def list_step_assignments(self) -> list[StepAssignment]:
        async with self._guard("load step configuration"):
            result = await self.db.execute(
                select(StepAssignment)
                .order_by(StepAssignment.component_type)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def write_step_assignments(
        self,
        pages: dict[str, int],
        expected_version: int | None = None,
    ) -> int:
        """Replace the page of every given component in one transaction.

        Rows are locked for the duration, the version check and all writes
        happen inside the same transaction, and nothing is visible to other
        sessions until the final commit. Returns the new version.
        """
        async with self._guard("commit step configuration"):
            result = await self.db.execute(
                select(StepAssignment)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            existing = {row.component_type: row for row in result.scalars().all()}
            current_version = max((row.version for row in existing.values()), default=0)
            if expected_version is not None and expected_version != current_version:
                raise ConfigurationConflictError(expected_version, current_version)

            new_version = current_version + 1
            for component, page in pages.items():
                row = existing.get(component)
                if row is None:
                    self.db.add(StepAssignment(
                        component_type=component,
                        page_number=page,
                        version=new_version,
                    ))
                else:
                    row.page_number = page
                    row.version = new_version
            for component, row in existing.items():
                if component not in pages:
                    row.version = new_version
            await self.db.flush()
            await self.db.commit()
        return new_version

    async def insert_missing_step_assignments(self, defaults: dict[str, int]) -> int:
        """Seed rows for components that have no assignment yet. Returns rows added."""
        async with self._guard("seed step configuration"):
            result = await self.db.execute(
                select(StepAssignment.component_type, StepAssignment.version)
            )
            rows = result.all()
            present = {row[0] for row in rows}
            version = max((row[1] for row in rows), default=1)
            added = 0
            for component, page in defaults.items():
                if component not in present:
                    self.db.add(StepAssignment(
                        component_type=component,
                        page_number=page,
                        version=version,
                    ))
                    added += 1
            if added:
                await self.db.flush()
                await self.db.commit()
        return added
