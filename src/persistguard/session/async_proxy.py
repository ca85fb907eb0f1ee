"""
Asynchronous guarded session.

Same contract as `GuardedSession`, for `sqlalchemy.ext.asyncio.AsyncSession`. Coroutine methods of the
wrapped session stay coroutines here; synchronous ones (`add`, `expire`, `begin`, ...) stay synchronous.
Cancellation (`asyncio.CancelledError`) is not an Exception and passes through untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from persistguard.exceptions import ClassificationRules, translate_errors

from .async_results import GuardedAsyncConnection, GuardedAsyncResult, GuardedAsyncScalarResult

logger = logging.getLogger(__name__)


class GuardedAsyncTransaction:
    """
    Wraps an AsyncSessionTransaction so that commit-time failures are normalized.

    Supports the same usage forms as the wrapped transaction:
        async with session.begin(): ...
        transaction = await session.begin()
    """

    def __init__(self, transaction: AsyncSessionTransaction, rules: ClassificationRules | None = None):
        self._transaction = transaction
        self._rules = rules

    @property
    def wrapped(self) -> AsyncSessionTransaction:
        return self._transaction

    @property
    def is_active(self) -> bool:
        return self._transaction.is_active

    @property
    def nested(self) -> bool:
        return self._transaction.nested

    async def start(self) -> GuardedAsyncTransaction:
        with translate_errors(self._rules):
            await self._transaction.start()
        return self

    def __await__(self):
        return self.start().__await__()

    async def commit(self) -> None:
        with translate_errors(self._rules):
            await self._transaction.commit()

    async def rollback(self) -> None:
        with translate_errors(self._rules):
            await self._transaction.rollback()

    async def __aenter__(self) -> GuardedAsyncTransaction:
        with translate_errors(self._rules):
            await self._transaction.__aenter__()
        return self

    async def __aexit__(self, type_, value, traceback) -> Any:
        with translate_errors(self._rules):
            return await self._transaction.__aexit__(type_, value, traceback)


class GuardedAsyncSession:
    """Error-normalizing pass-through for an AsyncSession. Never owns the wrapped session's lifecycle."""

    def __init__(self, session: AsyncSession | GuardedAsyncSession, rules: ClassificationRules | None = None):
        self._session = session
        self._rules = rules
        logger.debug(
            "session.guarded",
            extra={"session_type": type(session).__name__, "mode": "async"},
        )

    def __repr__(self) -> str:
        return f"<GuardedAsyncSession wrapping {self._session!r}>"

    # =============================================================================================================
    # State (read-only pass-through)
    # =============================================================================================================

    @property
    def wrapped(self) -> AsyncSession | GuardedAsyncSession:
        return self._session

    @property
    def rules(self) -> ClassificationRules | None:
        return self._rules

    @property
    def sync_session(self):
        return self._session.sync_session

    @property
    def is_active(self) -> bool:
        return self._session.is_active

    @property
    def new(self):
        return self._session.new

    @property
    def dirty(self):
        return self._session.dirty

    @property
    def deleted(self):
        return self._session.deleted

    @property
    def info(self) -> dict:
        return self._session.info

    @property
    def bind(self):
        return self._session.bind

    def in_transaction(self) -> bool:
        with translate_errors(self._rules):
            return self._session.in_transaction()

    @property
    def identity_map(self):
        return self._session.identity_map

    @property
    def autoflush(self) -> bool:
        return self._session.autoflush

    @autoflush.setter
    def autoflush(self, value: bool) -> None:
        self._session.autoflush = value

    @property
    def no_autoflush(self):
        """Context manager that disables autoflush on the wrapped session for the duration of the block."""
        return self._session.no_autoflush

    def __contains__(self, instance: object) -> bool:
        with translate_errors(self._rules):
            return instance in self._session

    def __iter__(self):
        with translate_errors(self._rules):
            return iter(self._session)

    def is_modified(self, instance: object, *args, **kwargs) -> bool:
        with translate_errors(self._rules):
            return self._session.is_modified(instance, *args, **kwargs)

    def get_bind(self, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.get_bind(*args, **kwargs)

    # =============================================================================================================
    # Entity lifecycle
    # =============================================================================================================

    def add(self, instance: object, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.add(instance, *args, **kwargs)

    def add_all(self, instances, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.add_all(instances, *args, **kwargs)

    async def delete(self, instance: object) -> None:
        with translate_errors(self._rules):
            return await self._session.delete(instance)

    async def get(self, entity, ident, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._session.get(entity, ident, *args, **kwargs)

    async def get_one(self, entity, ident, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._session.get_one(entity, ident, *args, **kwargs)

    async def merge(self, instance, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._session.merge(instance, *args, **kwargs)

    async def refresh(self, instance, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return await self._session.refresh(instance, *args, **kwargs)

    def expire(self, instance, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.expire(instance, *args, **kwargs)

    def expire_all(self) -> None:
        with translate_errors(self._rules):
            return self._session.expire_all()

    def expunge(self, instance) -> None:
        with translate_errors(self._rules):
            return self._session.expunge(instance)

    def expunge_all(self) -> None:
        with translate_errors(self._rules):
            return self._session.expunge_all()

    # =============================================================================================================
    # Statement execution
    # =============================================================================================================

    async def execute(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._session.execute(statement, *args, **kwargs)

    async def scalar(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._session.scalar(statement, *args, **kwargs)

    async def scalars(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._session.scalars(statement, *args, **kwargs)

    async def stream(self, statement, *args, **kwargs) -> GuardedAsyncResult:
        # Rows keep arriving from a live cursor as the result is consumed, so it is handed out wrapped.
        with translate_errors(self._rules):
            result = await self._session.stream(statement, *args, **kwargs)
        return GuardedAsyncResult(result, self._rules)

    async def stream_scalars(self, statement, *args, **kwargs) -> GuardedAsyncScalarResult:
        with translate_errors(self._rules):
            result = await self._session.stream_scalars(statement, *args, **kwargs)
        return GuardedAsyncScalarResult(result, self._rules)

    async def run_sync(self, fn, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._session.run_sync(fn, *args, **kwargs)

    async def connection(self, *args, **kwargs) -> GuardedAsyncConnection:
        with translate_errors(self._rules):
            connection = await self._session.connection(*args, **kwargs)
        return GuardedAsyncConnection(connection, self._rules)

    # =============================================================================================================
    # Transaction boundaries
    # =============================================================================================================

    async def flush(self, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return await self._session.flush(*args, **kwargs)

    async def commit(self) -> None:
        with translate_errors(self._rules):
            return await self._session.commit()

    async def rollback(self) -> None:
        with translate_errors(self._rules):
            return await self._session.rollback()

    async def close(self) -> None:
        with translate_errors(self._rules):
            return await self._session.close()

    def begin(self) -> GuardedAsyncTransaction:
        with translate_errors(self._rules):
            transaction = self._session.begin()
        return GuardedAsyncTransaction(transaction, self._rules)

    def begin_nested(self) -> GuardedAsyncTransaction:
        with translate_errors(self._rules):
            transaction = self._session.begin_nested()
        return GuardedAsyncTransaction(transaction, self._rules)

    async def __aenter__(self) -> GuardedAsyncSession:
        with translate_errors(self._rules):
            await self._session.__aenter__()
        return self

    async def __aexit__(self, type_, value, traceback) -> Any:
        with translate_errors(self._rules):
            return await self._session.__aexit__(type_, value, traceback)


__all__ = ["GuardedAsyncSession", "GuardedAsyncTransaction"]
