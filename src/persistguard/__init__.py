"""
persistguard: normalize SQLAlchemy persistence failures into two stable error kinds.

Usage:
    from persistguard import guard, DuplicateEntryError, PersistenceError

    db = guard(session)
    try:
        db.add(user)
        db.commit()
    except DuplicateEntryError:
        ...   # 409 Conflict
    except PersistenceError:
        ...   # 500 Internal Server Error
"""

from .exceptions import (
    ErrorKind,
    PersistenceError,
    DuplicateEntryError,
    ClassificationRules,
    DEFAULT_RULES,
    classify,
    raise_normalized,
    translate_errors,
)
from .session import guard, GuardedSession, GuardedAsyncSession

__all__ = [
    "ErrorKind",
    "PersistenceError",
    "DuplicateEntryError",
    "ClassificationRules",
    "DEFAULT_RULES",
    "classify",
    "raise_normalized",
    "translate_errors",
    "guard",
    "GuardedSession",
    "GuardedAsyncSession",
]
