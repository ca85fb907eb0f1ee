"""
Synchronous guarded session.

`GuardedSession` presents the operations of a SQLAlchemy `Session` and forwards each call to the wrapped
session unchanged. The only behavioral difference is on failure: any exception raised by the session (or by
the driver underneath it) is classified and re-raised as DuplicateEntryError / PersistenceError, with the
original exception attached as `__cause__`.

Objects that run later are returned wrapped as well: transactions from `begin()` / `begin_nested()` (failures
when a `with session.begin():` block commits), the legacy `Query` (which autoflushes when it is iterated) and
the session-bound `Connection`.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session, SessionTransaction

from persistguard.exceptions import ClassificationRules, translate_errors

from .results import GuardedConnection, GuardedQuery

logger = logging.getLogger(__name__)


class GuardedTransaction:
    """Wraps a SessionTransaction so that commit-time failures are normalized."""

    def __init__(self, transaction: SessionTransaction, rules: ClassificationRules | None = None):
        self._transaction = transaction
        self._rules = rules

    @property
    def wrapped(self) -> SessionTransaction:
        return self._transaction

    @property
    def is_active(self) -> bool:
        return self._transaction.is_active

    @property
    def nested(self) -> bool:
        return self._transaction.nested

    def commit(self) -> None:
        with translate_errors(self._rules):
            self._transaction.commit()

    def rollback(self) -> None:
        with translate_errors(self._rules):
            self._transaction.rollback()

    def close(self) -> None:
        with translate_errors(self._rules):
            self._transaction.close()

    def __enter__(self) -> GuardedTransaction:
        with translate_errors(self._rules):
            self._transaction.__enter__()
        return self

    def __exit__(self, type_, value, traceback) -> Any:
        # Commits on a clean exit, rolls back when the block raised; both may fail here.
        with translate_errors(self._rules):
            return self._transaction.__exit__(type_, value, traceback)


class GuardedSession:
    """
    Error-normalizing pass-through for a synchronous SQLAlchemy Session.

    The wrapper never owns the session: it does not open, close or roll it back on its own. `close()` and the
    context-manager exit simply forward to the wrapped session when the caller invokes them.
    """

    def __init__(self, session: Session | GuardedSession, rules: ClassificationRules | None = None):
        self._session = session
        self._rules = rules
        logger.debug(
            "session.guarded",
            extra={"session_type": type(session).__name__, "mode": "sync"},
        )

    def __repr__(self) -> str:
        return f"<GuardedSession wrapping {self._session!r}>"

    # =============================================================================================================
    # State (read-only pass-through)
    # =============================================================================================================

    @property
    def wrapped(self) -> Session | GuardedSession:
        return self._session

    @property
    def rules(self) -> ClassificationRules | None:
        return self._rules

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

    # =============================================================================================================
    # Entity lifecycle
    # =============================================================================================================

    def add(self, instance: object, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.add(instance, *args, **kwargs)

    def add_all(self, instances, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.add_all(instances, *args, **kwargs)

    def delete(self, instance: object) -> None:
        with translate_errors(self._rules):
            return self._session.delete(instance)

    def get(self, entity, ident, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.get(entity, ident, *args, **kwargs)

    def get_one(self, entity, ident, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.get_one(entity, ident, *args, **kwargs)

    def merge(self, instance, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.merge(instance, *args, **kwargs)

    def refresh(self, instance, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.refresh(instance, *args, **kwargs)

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

    def execute(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.execute(statement, *args, **kwargs)

    def scalar(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.scalar(statement, *args, **kwargs)

    def scalars(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.scalars(statement, *args, **kwargs)

    def query(self, *entities, **kwargs) -> GuardedQuery:
        # The Query runs (and autoflushes) later, when it is iterated, so it is handed out wrapped.
        with translate_errors(self._rules):
            query = self._session.query(*entities, **kwargs)
        return GuardedQuery(query, self._rules)

    def connection(self, *args, **kwargs) -> GuardedConnection:
        with translate_errors(self._rules):
            connection = self._session.connection(*args, **kwargs)
        return GuardedConnection(connection, self._rules)

    def get_bind(self, *args, **kwargs):
        with translate_errors(self._rules):
            return self._session.get_bind(*args, **kwargs)

    # =============================================================================================================
    # Bulk operations
    # =============================================================================================================

    def bulk_save_objects(self, objects, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.bulk_save_objects(objects, *args, **kwargs)

    def bulk_insert_mappings(self, mapper, mappings, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.bulk_insert_mappings(mapper, mappings, *args, **kwargs)

    def bulk_update_mappings(self, mapper, mappings) -> None:
        with translate_errors(self._rules):
            return self._session.bulk_update_mappings(mapper, mappings)

    # =============================================================================================================
    # Transaction boundaries
    # =============================================================================================================

    def flush(self, *args, **kwargs) -> None:
        with translate_errors(self._rules):
            return self._session.flush(*args, **kwargs)

    def commit(self) -> None:
        with translate_errors(self._rules):
            return self._session.commit()

    def rollback(self) -> None:
        with translate_errors(self._rules):
            return self._session.rollback()

    def close(self) -> None:
        with translate_errors(self._rules):
            return self._session.close()

    def begin(self, *args, **kwargs) -> GuardedTransaction:
        with translate_errors(self._rules):
            transaction = self._session.begin(*args, **kwargs)
        return GuardedTransaction(transaction, self._rules)

    def begin_nested(self) -> GuardedTransaction:
        with translate_errors(self._rules):
            transaction = self._session.begin_nested()
        return GuardedTransaction(transaction, self._rules)

    def __enter__(self) -> GuardedSession:
        with translate_errors(self._rules):
            self._session.__enter__()
        return self

    def __exit__(self, type_, value, traceback) -> Any:
        with translate_errors(self._rules):
            return self._session.__exit__(type_, value, traceback)


__all__ = ["GuardedSession", "GuardedTransaction"]
