"""Alembic environment — async migration runner for the call store.

Invariants:
    - The database URL comes from callstore.config.Settings (DATABASE_URL env,
      postgresql:// normalized to postgresql+asyncpg://) unless the caller
      passes -x url=...; alembic.ini's sqlalchemy.url is only a placeholder
    - Every mapped model is imported before autogenerate reads Base.metadata

Design Decisions:
    - render_as_batch on SQLite: ALTER TABLE support there is limited
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

from callstore.config import Settings
from callstore.db.base import Base
import callstore.models  # noqa: F401  (registers CallRecord, TranscriptEntry, ToolEvent)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("url")
    if override:
        return Settings(database_url=override).database_url
    return Settings().database_url


def _configure(**kwargs) -> None:
    url = kwargs.pop("url", None)
    is_sqlite = (url or "").startswith("sqlite") or (
        "connection" in kwargs and kwargs["connection"].dialect.name == "sqlite"
    )
    context.configure(
        url=url,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=is_sqlite,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    engine = async_engine_from_config(
        section, prefix="sqlalchemy.", poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_sync)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
