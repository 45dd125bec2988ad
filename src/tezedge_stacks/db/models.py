"""
tezedge_stacks.db.models

Persistence schema for the deployment event log.

Responsibilities:
- Record every render/validate/up/down performed against a stack, with the
  acting principal and structured details (findings summary, probe results, errors).
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Index, Integer, String, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from tezedge_stacks.db.base import Base


def _utcnow() -> datetime:
    # Naive UTC: SQLite drops tzinfo anyway.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class DeploymentEventType(enum.StrEnum):
    # Stored as strings; treat as a stable contract for log consumers.
    rendered = "RENDERED"
    validated = "VALIDATED"
    up_rejected = "UP_REJECTED"
    up_started = "UP_STARTED"
    up_ready = "UP_READY"
    up_degraded = "UP_DEGRADED"
    up_failed = "UP_FAILED"
    down = "DOWN"
    down_failed = "DOWN_FAILED"


class DeploymentEvent(Base):
    __tablename__ = "deployment_events"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    stack: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    actor: Mapped[str] = mapped_column(String(256), nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)
    # Insertion order; breaks ties between events written in the same clock tick.
    seq: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    __table_args__ = (Index("ix_deployment_events_stack_created", "stack", "created_at"),)
