"""deployment event insertion sequence

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("deployment_events") as batch:
        batch.add_column(sa.Column("seq", sa.Integer(), nullable=False, server_default="0"))

    # Existing rows are numbered by timestamp; ties share a number.
    op.execute(
        "UPDATE deployment_events SET seq = ("
        "SELECT COUNT(*) FROM deployment_events AS e "
        "WHERE e.created_at <= deployment_events.created_at)"
    )

    with op.batch_alter_table("deployment_events") as batch:
        batch.alter_column("seq", server_default=None)
        batch.create_index("ix_deployment_events_seq", ["seq"])


def downgrade() -> None:
    with op.batch_alter_table("deployment_events") as batch:
        batch.drop_index("ix_deployment_events_seq")
        batch.drop_column("seq")
