"""
alembic.env

Alembic migration environment for the deployment event log.

Notes:
- Executed by Alembic, not imported by the API or CLI runtime.
- Online migrations use a synchronous driver URL: the `+aiosqlite` / `+asyncpg`
  suffix of `TZS_DATABASE_URL` is stripped.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from tezedge_stacks.db import models  # noqa: F401  # registers tables on Base.metadata
from tezedge_stacks.db.base import Base
from tezedge_stacks.settings import Settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _get_database_url() -> str:
    url = os.environ.get("TZS_DATABASE_URL") or Settings().database_url
    for async_driver in ("+aiosqlite", "+asyncpg"):
        url = url.replace(async_driver, "")
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        # Batch mode: SQLite cannot ALTER most constraints in place.
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
