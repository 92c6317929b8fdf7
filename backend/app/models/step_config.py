"""Component → page assignments for the dynamic wizard steps.

component_type is the natural key: at most one row per component.
Rows are seeded once and only ever reassigned, never deleted. Every
configuration commit stamps all rows with the same new `version`.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class StepAssignment(Base):
    __tablename__ = "step_config"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    component_type: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
