"""
tezedge_stacks.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Expose app.state resources (settings, DB sessions, shared HTTP client).
- Resolve stack names (404 for unknown stacks).
- Build a request-scoped `DeploymentService`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.status import HTTP_404_NOT_FOUND

from tezedge_stacks.services.deployment_service import DeploymentService
from tezedge_stacks.settings import Settings
from tezedge_stacks.stacks.registry import StackDefinition, UnknownStackError, get_stack


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http  # type: ignore[attr-defined]


def stack_dep(name: str) -> StackDefinition:
    try:
        return get_stack(name)
    except UnknownStackError as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=str(e)) from e


def deployment_service(
    request: Request,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    http: httpx.AsyncClient = Depends(http_client),
) -> DeploymentService:
    return DeploymentService(
        session=session,
        settings=settings,
        http=http,
        runner_factory=getattr(request.app.state, "runner_factory", None),
    )
