"""
Guarded wrappers for the lazy objects an AsyncSession hands out.

`stream()` returns an `AsyncResult` that keeps fetching from a live cursor as it is consumed, and
`connection()` returns an `AsyncConnection` that executes on its own. Their fetching/executing coroutines
run inside the translation scope; iteration is wrapped with an async generator.
"""

from __future__ import annotations

from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncResult, AsyncScalarResult

from persistguard.exceptions import ClassificationRules, translate_errors


class GuardedAsyncScalarResult:
    """Error-normalizing pass-through for `AsyncScalarResult` (and base of GuardedAsyncResult)."""

    def __init__(self, result: AsyncScalarResult | AsyncResult | GuardedAsyncScalarResult,
                 rules: ClassificationRules | None = None):
        self._result = result
        self._rules = rules

    def __repr__(self) -> str:
        return f"<{type(self).__name__} wrapping {self._result!r}>"

    @property
    def wrapped(self):
        return self._result

    def unique(self, *args, **kwargs):
        with translate_errors(self._rules):
            result = self._result.unique(*args, **kwargs)
        return type(self)(result, self._rules)

    async def __aiter__(self) -> AsyncIterator[Any]:
        with translate_errors(self._rules):
            async for row in self._result:
                yield row

    async def partitions(self, size: int | None = None) -> AsyncIterator[Any]:
        with translate_errors(self._rules):
            async for partition in self._result.partitions(size):
                yield partition

    async def all(self):
        with translate_errors(self._rules):
            return await self._result.all()

    async def fetchall(self):
        with translate_errors(self._rules):
            return await self._result.fetchall()

    async def fetchmany(self, size: int | None = None):
        with translate_errors(self._rules):
            return await self._result.fetchmany(size)

    async def first(self):
        with translate_errors(self._rules):
            return await self._result.first()

    async def one(self):
        with translate_errors(self._rules):
            return await self._result.one()

    async def one_or_none(self):
        with translate_errors(self._rules):
            return await self._result.one_or_none()


class GuardedAsyncResult(GuardedAsyncScalarResult):
    """Error-normalizing pass-through for a streamed `AsyncResult`."""

    def keys(self):
        return self._result.keys()

    def scalars(self, index: int = 0) -> GuardedAsyncScalarResult:
        with translate_errors(self._rules):
            result = self._result.scalars(index)
        return GuardedAsyncScalarResult(result, self._rules)

    async def fetchone(self):
        with translate_errors(self._rules):
            return await self._result.fetchone()

    async def scalar(self):
        with translate_errors(self._rules):
            return await self._result.scalar()

    async def scalar_one(self):
        with translate_errors(self._rules):
            return await self._result.scalar_one()

    async def scalar_one_or_none(self):
        with translate_errors(self._rules):
            return await self._result.scalar_one_or_none()

    async def close(self) -> None:
        with translate_errors(self._rules):
            return await self._result.close()


class GuardedAsyncConnection:
    """Error-normalizing pass-through for the `AsyncConnection` an AsyncSession is bound to."""

    def __init__(self, connection: AsyncConnection | GuardedAsyncConnection, rules: ClassificationRules | None = None):
        self._connection = connection
        self._rules = rules

    def __repr__(self) -> str:
        return f"<GuardedAsyncConnection wrapping {self._connection!r}>"

    @property
    def wrapped(self) -> AsyncConnection | GuardedAsyncConnection:
        return self._connection

    @property
    def closed(self) -> bool:
        return self._connection.closed

    @property
    def dialect(self):
        return self._connection.dialect

    @property
    def sync_connection(self):
        return self._connection.sync_connection

    def in_transaction(self) -> bool:
        with translate_errors(self._rules):
            return self._connection.in_transaction()

    async def execute(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._connection.execute(statement, *args, **kwargs)

    async def exec_driver_sql(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._connection.exec_driver_sql(statement, *args, **kwargs)

    async def scalar(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._connection.scalar(statement, *args, **kwargs)

    async def scalars(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._connection.scalars(statement, *args, **kwargs)

    async def stream(self, statement, *args, **kwargs) -> GuardedAsyncResult:
        with translate_errors(self._rules):
            result = await self._connection.stream(statement, *args, **kwargs)
        return GuardedAsyncResult(result, self._rules)

    async def stream_scalars(self, statement, *args, **kwargs) -> GuardedAsyncScalarResult:
        with translate_errors(self._rules):
            result = await self._connection.stream_scalars(statement, *args, **kwargs)
        return GuardedAsyncScalarResult(result, self._rules)

    async def run_sync(self, fn, *args, **kwargs):
        with translate_errors(self._rules):
            return await self._connection.run_sync(fn, *args, **kwargs)

    async def commit(self) -> None:
        with translate_errors(self._rules):
            return await self._connection.commit()

    async def rollback(self) -> None:
        with translate_errors(self._rules):
            return await self._connection.rollback()

    async def close(self) -> None:
        with translate_errors(self._rules):
            return await self._connection.close()


__all__ = ["GuardedAsyncResult", "GuardedAsyncScalarResult", "GuardedAsyncConnection"]
