"""Create users and step_config tables; seed default step assignments.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

import uuid

from alembic import op
import sqlalchemy as sa

DEFAULT_ASSIGNMENTS = [
    ("about_me", 2),
    ("address", 2),
    ("birthdate", 3),
]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("about_me", sa.Text()),
        sa.Column("street_address", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("state", sa.String(100)),
        sa.Column("zip", sa.String(20)),
        sa.Column("birthdate", sa.Date()),
        sa.Column("current_step", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("current_step BETWEEN 1 AND 4", name="ck_users_current_step"),
        sa.CheckConstraint("NOT completed OR current_step = 4", name="ck_users_completed_step"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    step_config = op.create_table(
        "step_config",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("component_type", sa.String(50), nullable=False),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("page_number IN (2, 3)", name="ck_step_config_page"),
    )
    op.create_index("ix_step_config_component_type", "step_config", ["component_type"], unique=True)

    op.bulk_insert(
        step_config,
        [
            {"id": str(uuid.uuid4()), "component_type": c, "page_number": p, "version": 1}
            for c, p in DEFAULT_ASSIGNMENTS
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_step_config_component_type", table_name="step_config")
    op.drop_table("step_config")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
