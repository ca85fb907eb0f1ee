"""
Core pytest configuration for the entire test suite.

Provides in-memory SQLite engines and sessions (sync via sqlite3, async via aiosqlite) plus the guarded
wrappers around them. Domain-specific fixtures live in tests/test_fixtures/.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Generator

# -------------------------------
# Early logging tuning
# -------------------------------
# Keep this block at the very top, before importing modules that may initialize these loggers.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "asyncio",
    "aiosqlite",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from persistguard.tests.test_fixtures.models import Base

# A single shared connection per engine (StaticPool) keeps the in-memory database alive for the whole test.
SYNC_DATABASE_URL = "sqlite://"
ASYNC_DATABASE_URL = "sqlite+aiosqlite://"


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES (sync)
# ------------------------------------------------------------------------------------------------

@pytest.fixture()
def sync_engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        SYNC_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(sync_engine: Engine) -> Generator[Session, None, None]:
    """Plain synchronous Session; closed after the test."""
    maker = sessionmaker(bind=sync_engine, expire_on_commit=False)
    session = maker()
    try:
        yield session
    finally:
        session.close()


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES (async)
# ------------------------------------------------------------------------------------------------

@pytest.fixture()
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(ASYNC_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture()
async def async_db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Plain AsyncSession; closed after the test."""
    maker = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session


# Guarded-session fixtures
from .test_fixtures.session_fixtures import (  # noqa: E402,F401
    guarded_session,
    guarded_async_session,
    sample_account_data,
    mock_session,
    mock_async_session,
)
