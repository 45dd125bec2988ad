"""
tezedge_stacks.db.init_db

Table bootstrap for dev/test and for the CLI's local event log. Production
databases are migrated with Alembic (`alembic upgrade head`).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from tezedge_stacks.db import models  # noqa: F401  # registers tables on Base.metadata
from tezedge_stacks.db.base import Base
from tezedge_stacks.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.debug("event_log_ready", database=engine.url.render_as_string(hide_password=True))
