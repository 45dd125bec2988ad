"""deployment event log

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "deployment_events",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("stack", sa.String(length=64), nullable=False),
        sa.Column("actor", sa.String(length=256), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_deployment_events"),
    )
    op.create_index("ix_deployment_events_stack", "deployment_events", ["stack"])
    op.create_index("ix_deployment_events_event_type", "deployment_events", ["event_type"])
    op.create_index("ix_deployment_events_created_at", "deployment_events", ["created_at"])
    op.create_index("ix_deployment_events_stack_created", "deployment_events", ["stack", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_deployment_events_stack_created", table_name="deployment_events")
    op.drop_index("ix_deployment_events_created_at", table_name="deployment_events")
    op.drop_index("ix_deployment_events_event_type", table_name="deployment_events")
    op.drop_index("ix_deployment_events_stack", table_name="deployment_events")
    op.drop_table("deployment_events")
