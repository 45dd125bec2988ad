"""
tezedge_stacks.db.session

Async SQLAlchemy engine + session factory for the deployment event log.

Responsibilities:
- Create the async engine from settings (SQLite via aiosqlite by default).
- Make sure a file-backed SQLite database has a directory to live in.
- Create the async sessionmaker used by the API (per request) and the CLI
  (per command).
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tezedge_stacks.settings import Settings


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_engine(settings: Settings) -> AsyncEngine:
    _ensure_sqlite_dir(settings.database_url)
    return create_async_engine(settings.database_url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Events are serialized after the commit that stored them.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
