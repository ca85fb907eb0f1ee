from sqlalchemy.ext.asyncio import AsyncSession

from persistguard.exceptions import ClassificationRules

from .proxy import GuardedSession, GuardedTransaction
from .async_proxy import GuardedAsyncSession, GuardedAsyncTransaction
from .results import GuardedQuery, GuardedConnection
from .async_results import GuardedAsyncConnection, GuardedAsyncResult, GuardedAsyncScalarResult


def guard(session, rules: ClassificationRules | None = None) -> GuardedSession | GuardedAsyncSession:
    """
    Wrap a live session so every failure surfaces as DuplicateEntryError / PersistenceError.

    AsyncSession (or an already guarded async session) gets a GuardedAsyncSession, anything else a
    GuardedSession. Wrapping a guarded session again is allowed; errors are still normalized exactly once.
    """
    if isinstance(session, (AsyncSession, GuardedAsyncSession)):
        return GuardedAsyncSession(session, rules)
    return GuardedSession(session, rules)


__all__ = [
    "guard",
    "GuardedSession",
    "GuardedTransaction",
    "GuardedAsyncSession",
    "GuardedAsyncTransaction",
    "GuardedQuery",
    "GuardedConnection",
    "GuardedAsyncConnection",
    "GuardedAsyncResult",
    "GuardedAsyncScalarResult",
]
