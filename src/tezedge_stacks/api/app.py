"""
tezedge_stacks.api.app

FastAPI app factory.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own shared infrastructure for the process lifetime (DB engine, probe HTTP client).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from tezedge_stacks import __version__
from tezedge_stacks.api.routers.deployments import router as deployments_router
from tezedge_stacks.api.routers.dev_auth import router as dev_auth_router
from tezedge_stacks.api.routers.health import router as health_router
from tezedge_stacks.api.routers.stacks import router as stacks_router
from tezedge_stacks.db.init_db import init_db
from tezedge_stacks.db.session import create_engine, create_sessionmaker
from tezedge_stacks.observability.logging import configure_logging, get_logger
from tezedge_stacks.observability.middleware import RequestContextMiddleware
from tezedge_stacks.services.deployment_service import RunnerFactory
from tezedge_stacks.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, runner_factory: RunnerFactory | None = None) -> FastAPI:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        log_format=settings.log_format,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        app.state.http = httpx.AsyncClient(follow_redirects=False)
        if settings.env in ("dev", "test"):
            # Prod databases are migrated with Alembic.
            await init_db(engine)
        try:
            yield
        finally:
            await app.state.http.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="TezEdge Stacks",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.runner_factory = runner_factory

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(stacks_router)
    app.include_router(deployments_router)
    return app
