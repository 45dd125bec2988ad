"""
tezedge_stacks.db.repositories.events

Repository for `DeploymentEvent` entities.

Responsibilities:
- Append deployment events.
- List a stack's events newest-first.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tezedge_stacks.db.models import DeploymentEvent, DeploymentEventType


class DeploymentEventRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        stack: str,
        actor: str,
        event_type: DeploymentEventType,
        details: dict[str, Any] | None = None,
    ) -> DeploymentEvent:
        # Append-only: events are never updated or deleted in normal operation.
        last = await self._session.scalar(select(func.coalesce(func.max(DeploymentEvent.seq), 0)))
        ev = DeploymentEvent(
            seq=last + 1,
            stack=stack,
            actor=actor,
            event_type=str(event_type),
            details=details or {},
        )
        self._session.add(ev)
        await self._session.flush()
        return ev

    async def list_for_stack(self, stack: str, *, limit: int = 100) -> list[DeploymentEvent]:
        stmt = (
            select(DeploymentEvent)
            .where(DeploymentEvent.stack == stack)
            .order_by(desc(DeploymentEvent.created_at), desc(DeploymentEvent.seq))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Commits belong to the service layer; the repository only flushes.
