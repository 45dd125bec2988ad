"""
tezedge_stacks.api.routers.health

Probes for the API process itself (not for the stacks it manages).

Responsibilities:
- Liveness (`/healthz`).
- Readiness (`/readyz`): event-log DB round-trip, plus whether the configured
  docker binary is on PATH. A missing binary does not fail readiness: listing,
  rendering and validation still work without it.
"""

from __future__ import annotations

import shutil

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tezedge_stacks.api.deps import db_session, settings_dep
from tezedge_stacks.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, str | bool]:
    await session.execute(text("SELECT 1"))
    return {"status": "ready", "docker": shutil.which(settings.docker_binary) is not None}
