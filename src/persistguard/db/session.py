from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from persistguard.config import get_settings
from persistguard.exceptions import ClassificationRules
from persistguard.session import GuardedAsyncSession, guard


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the AsyncEngine once, from settings. Nothing connects until the first session needs it."""
    settings = get_settings()
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.SQLALCHEMY_ECHO,   # Set to False in production
        pool_pre_ping=True,              # Enables connection health checks
    )


@lru_cache()
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


@lru_cache()
def get_classification_rules() -> ClassificationRules:
    return ClassificationRules.from_settings(get_settings())


async def get_async_session() -> AsyncGenerator[GuardedAsyncSession, None]:
    """FastAPI dependency. Yields a guarded session and ensures it's closed after the request.

    Usage:
        async def endpoint(db: GuardedAsyncSession = Depends(get_async_session)):
            await db.execute(...)
    """
    # Enter the guarded session so a failure while closing at teardown is normalized too.
    async with guard(get_sessionmaker()(), get_classification_rules()) as db:
        yield db
