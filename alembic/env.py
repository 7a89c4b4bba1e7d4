"""Alembic environment: async migration runner for the users schema.

- The URL is `sqlalchemy.url` when the caller set one (tests, one-off targets),
  otherwise `Settings.DATABASE_URL`, the same URL the service connects with.
- Logging goes through `setup_logging`, so migration output has the service's format.
- `Base.metadata` (with its constraint naming convention) is the autogenerate target.
"""

import asyncio

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

from user_registry.config.settings import get_settings
from user_registry.core.logging import setup_logging
from user_registry.database.base import Base
# Import all models so Base.metadata has them
import user_registry.models  # noqa: F401

config = context.config

if config.attributes.get("configure_logging", True):
    setup_logging(get_settings())

target_metadata = Base.metadata


def _get_database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_settings().DATABASE_URL


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it (`alembic upgrade head --sql`)."""
    context.configure(
        url=_get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
