"""
Guarded wrappers for the lazy objects a synchronous Session hands out.

A legacy `Query` does nothing until it is iterated (or `.all()` / `.one()` / ... is called), and that is also
where autoflush of pending writes happens. A `Connection` obtained from `session.connection()` executes on
its own. Both are wrapped so that failures raised when they finally run are normalized like the session's own.
"""

from __future__ import annotations

from typing import Any, Iterator

from sqlalchemy.engine import Connection
from sqlalchemy.orm import Query

from persistguard.exceptions import ClassificationRules, translate_errors


def _generative(name: str):
    """Build a Query method that returns a new query, re-wrapped."""

    def method(self: GuardedQuery, *args, **kwargs) -> GuardedQuery:
        with translate_errors(self._rules):
            query = getattr(self._query, name)(*args, **kwargs)
        return GuardedQuery(query, self._rules)

    method.__name__ = name
    method.__qualname__ = f"GuardedQuery.{name}"
    return method


class GuardedQuery:
    """
    Error-normalizing pass-through for a legacy ORM `Query`.

    Builder methods (`filter`, `order_by`, `join`, ...) return another GuardedQuery; executing methods run
    inside the translation scope.
    """

    def __init__(self, query: Query | GuardedQuery, rules: ClassificationRules | None = None):
        self._query = query
        self._rules = rules

    def __repr__(self) -> str:
        return f"<GuardedQuery wrapping {self._query!r}>"

    @property
    def wrapped(self) -> Query | GuardedQuery:
        return self._query

    @property
    def statement(self):
        with translate_errors(self._rules):
            return self._query.statement

    # -----------------------
    # Builders
    # -----------------------
    filter = _generative("filter")
    filter_by = _generative("filter_by")
    where = _generative("where")
    order_by = _generative("order_by")
    group_by = _generative("group_by")
    having = _generative("having")
    limit = _generative("limit")
    offset = _generative("offset")
    slice = _generative("slice")
    distinct = _generative("distinct")
    join = _generative("join")
    outerjoin = _generative("outerjoin")
    select_from = _generative("select_from")
    from_statement = _generative("from_statement")
    options = _generative("options")
    with_entities = _generative("with_entities")
    add_columns = _generative("add_columns")
    execution_options = _generative("execution_options")
    params = _generative("params")
    populate_existing = _generative("populate_existing")
    with_for_update = _generative("with_for_update")
    yield_per = _generative("yield_per")

    # -----------------------
    # Execution
    # -----------------------
    def __iter__(self) -> Iterator[Any]:
        with translate_errors(self._rules):
            yield from self._query

    def all(self) -> list:
        with translate_errors(self._rules):
            return self._query.all()

    def first(self):
        with translate_errors(self._rules):
            return self._query.first()

    def one(self):
        with translate_errors(self._rules):
            return self._query.one()

    def one_or_none(self):
        with translate_errors(self._rules):
            return self._query.one_or_none()

    def scalar(self):
        with translate_errors(self._rules):
            return self._query.scalar()

    def count(self) -> int:
        with translate_errors(self._rules):
            return self._query.count()

    def update(self, values, *args, **kwargs) -> int:
        with translate_errors(self._rules):
            return self._query.update(values, *args, **kwargs)

    def delete(self, *args, **kwargs) -> int:
        with translate_errors(self._rules):
            return self._query.delete(*args, **kwargs)

    def subquery(self, *args, **kwargs):
        with translate_errors(self._rules):
            return self._query.subquery(*args, **kwargs)

    def exists(self):
        with translate_errors(self._rules):
            return self._query.exists()


class GuardedConnection:
    """Error-normalizing pass-through for the `Connection` a Session is bound to."""

    def __init__(self, connection: Connection | GuardedConnection, rules: ClassificationRules | None = None):
        self._connection = connection
        self._rules = rules

    def __repr__(self) -> str:
        return f"<GuardedConnection wrapping {self._connection!r}>"

    @property
    def wrapped(self) -> Connection | GuardedConnection:
        return self._connection

    @property
    def closed(self) -> bool:
        return self._connection.closed

    @property
    def dialect(self):
        return self._connection.dialect

    def in_transaction(self) -> bool:
        with translate_errors(self._rules):
            return self._connection.in_transaction()

    def execution_options(self, **opt) -> GuardedConnection:
        with translate_errors(self._rules):
            connection = self._connection.execution_options(**opt)
        return GuardedConnection(connection, self._rules)

    def execute(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return self._connection.execute(statement, *args, **kwargs)

    def exec_driver_sql(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return self._connection.exec_driver_sql(statement, *args, **kwargs)

    def scalar(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return self._connection.scalar(statement, *args, **kwargs)

    def scalars(self, statement, *args, **kwargs):
        with translate_errors(self._rules):
            return self._connection.scalars(statement, *args, **kwargs)

    def commit(self) -> None:
        with translate_errors(self._rules):
            return self._connection.commit()

    def rollback(self) -> None:
        with translate_errors(self._rules):
            return self._connection.rollback()

    def close(self) -> None:
        with translate_errors(self._rules):
            return self._connection.close()


__all__ = ["GuardedQuery", "GuardedConnection"]
