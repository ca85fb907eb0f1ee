from .base import ErrorKind, PersistenceError, DuplicateEntryError
from .classifier import ClassificationRules, DEFAULT_RULES, classify, direct_cause
from .mapper import raise_normalized, translate_errors

__all__ = [
    "ErrorKind",
    "PersistenceError",
    "DuplicateEntryError",
    "ClassificationRules",
    "DEFAULT_RULES",
    "classify",
    "direct_cause",
    "raise_normalized",
    "translate_errors",
]


r"""
# =================================================================================================================
# Two Levels of Exception Handling
# =================================================================================================================

1. Backend failures (low-level, technical)
    sqlalchemy.exc.IntegrityError, sqlite3.IntegrityError, psycopg.errors.UniqueViolation,
    asyncpg.exceptions.UniqueViolationError, OperationalError, ...

   These are what the driver raises. Application code never sees them directly.

2. Normalized errors (public API of the persistence layer)
    PersistenceError        -> anything else that went wrong in the persistence layer (HTTP 500)
    DuplicateEntryError     -> a write collided with a uniqueness/integrity constraint (HTTP 409)

How they work together:
    classify(exc)           -> picks the normalized kind (classifier.py)
    translate_errors()      -> raises the normalized error in place of the raw one (mapper.py)
    guard(session)          -> applies translate_errors() to every session operation (persistguard.session)

| Backend failure                                   | -> | Normalized          |
| ------------------------------------------------- | -- | ------------------- |
| IntegrityError / UniqueViolation (or its cause)   | -> | DuplicateEntryError |
| any message containing "duplicate"                | -> | DuplicateEntryError |
| everything else                                   | -> | PersistenceError    |
"""
