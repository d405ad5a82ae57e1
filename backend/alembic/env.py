"""
Alembic Migration Environment
===============================

What:  Runs migrations for the bug tracker schema (users, bugs, bug_tags).
How:   The URL comes from DATABASE_URL through bugtracker.config; online
       migrations run on an async engine via connection.run_sync.

Usage (from backend/):
    alembic upgrade head
    alembic upgrade head --sql      # offline: print the SQL only
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from bugtracker.config import settings
from bugtracker.database import Base

# Registers every table on Base.metadata
import bugtracker.models  # noqa: F401

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = Base.metadata
database_url = settings.database_url


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    # SQLite can only change constraints by rebuilding the table
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )


async def _run_online() -> None:
    engine = create_async_engine(database_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    asyncio.run(_run_online())
