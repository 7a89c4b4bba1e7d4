"""
Core pytest configuration for the entire test suite.

This module provides only the essential database setup and core utilities
that are needed across ALL types of tests (repositories, services, API, logging).

Domain-specific fixtures are located in:
- tests/test_fixtures/repository_fixtures.py  (clock, repository, service, user factory)
- tests/test_fixtures/service_fixtures.py     (in-memory fake of the repository)
- tests/test_fixtures/api_fixtures.py         (httpx client bound to the app)

Database selection:
- `TEST_DATABASE_URL` (e.g. a throwaway Postgres database in CI) when set
- otherwise a fresh in-memory SQLite database per test (aiosqlite + StaticPool)
"""

from __future__ import annotations

# -------------------------------
# Standard library imports
# -------------------------------
import os
import logging
from pathlib import Path
from urllib.parse import urlparse
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Set the level for noisy third-party loggers at import time (before importing modules that
# might initialize them). Keep this block at the very top.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
    "httpx",
    "httpcore",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Environment defaults
# -------------------------------
# Settings require database credentials; tests never connect with them unless
# TEST_DATABASE_URL points at a real server. Values already in the environment win.
for _key, _value in {
    "ENV": "testing",
    "TESTING": "true",
    "POSTGRES_USERNAME": "registry",
    "POSTGRES_PASSWORD": "registry",
    "POSTGRES_DB": "registry",
    "LOG_TO_STDOUT": "true",
    "LOG_LEVEL": "INFO",
}.items():
    os.environ.setdefault(_key, _value)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import StaticPool

# Import app modules AFTER the noisy logger levels and environment are set.
from user_registry.database.base import Base
from user_registry.models import User  # noqa: F401 - registers the users table on Base.metadata
from user_registry.config.settings import get_settings
from user_registry.core.logging.builder import setup_logging

# -------------------------------
# Load settings
# -------------------------------
settings = get_settings()
logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install application logging for the entire test session.

    The same dictConfig the app uses (formatters, handlers, filters) is active for every
    test. pytest's `caplog` attaches its own handler per test, after this runs, so
    `caplog.records` keeps working.
    """
    setup_logging(settings)
    yield


# ------------------------------------------------------------------------------------------------
# Determining the Test Database URL
# ------------------------------------------------------------------------------------------------

SQLITE_MEMORY_URL = "sqlite+aiosqlite://"


def safe_log_db_url(db_url: str) -> str:
    """
    Return the database URL without credentials (scheme, host, port and database only).
    """
    parsed = urlparse(db_url)
    return f"{parsed.scheme}://{parsed.hostname or ''}:{parsed.port or ''}/{parsed.path.lstrip('/')}"


def get_test_database_url() -> str:
    """
    1. `TEST_DATABASE_URL` environment variable (CI/CD override)
    2. in-memory SQLite (no server needed)
    """
    return os.getenv("TEST_DATABASE_URL") or SQLITE_MEMORY_URL


TEST_DATABASE_URL = get_test_database_url()
IS_SQLITE = TEST_DATABASE_URL.startswith("sqlite")
logger.info("tests.database", extra={"url": safe_log_db_url(TEST_DATABASE_URL)})


def use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Make SQLite transactions take the write lock at BEGIN.

    With pysqlite's default deferred BEGIN, two connections that both write can
    deadlock on lock promotion and one fails with "database is locked". With
    BEGIN IMMEDIATE the second writer waits for the first to commit, which is how
    a server database behaves for concurrent inserts.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------


async def _create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _drop_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture()
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    A fresh, empty database per test.

    SQLite: one in-memory database shared by every session of the test (StaticPool
    keeps the single connection alive). Server databases: tables are created before
    and dropped after the test.
    """
    if IS_SQLITE:
        engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    else:
        engine = create_async_engine(TEST_DATABASE_URL, pool_pre_ping=True)

    await _create_schema(engine)
    yield engine

    if not IS_SQLITE:
        await _drop_schema(engine)
    await engine.dispose()


@pytest.fixture()
async def concurrent_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    An engine whose sessions use separate connections, for races between transactions.

    SQLite: a database file under tmp_path (an in-memory database can't be shared
    between connections), with BEGIN IMMEDIATE transactions.
    """
    if IS_SQLITE:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
        use_immediate_transactions(engine)
    else:
        engine = create_async_engine(TEST_DATABASE_URL, pool_pre_ping=True)

    await _create_schema(engine)
    yield engine

    if not IS_SQLITE:
        await _drop_schema(engine)
    await engine.dispose()


@pytest.fixture()
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    One session per test. Code under test commits for real; isolation comes from the
    per-test database, not from rolling back.
    """
    async with session_factory() as session:
        yield session


# Shared fixtures (registered globally by importing them here)
from .test_fixtures.repository_fixtures import (  # noqa: E402
    clock,
    user_repository,
    user_service,
    sample_user_data,
    create_user,
    created_user,
    multiple_users,
)
from .test_fixtures.service_fixtures import fake_store, fake_service  # noqa: E402
from .test_fixtures.api_fixtures import app, client  # noqa: E402
