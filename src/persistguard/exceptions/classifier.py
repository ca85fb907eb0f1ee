import logging
from dataclasses import dataclass, replace
from typing import Iterable

from sqlalchemy.exc import IntegrityError

from .base import DuplicateEntryError, PersistenceError

logger = logging.getLogger(__name__)

# =================================================================================================================
# Default duplicate-entry allow-lists
# =================================================================================================================

# Exception types that always mean "the write collided with a constraint".
DEFAULT_DUPLICATE_TYPES: tuple[type[BaseException], ...] = (IntegrityError,)

# Class names matched anywhere in the exception's MRO. Covers DBAPI drivers whose classes are not importable
# here: sqlite3 / pymysql / aiosqlite (IntegrityError), psycopg (UniqueViolation),
# asyncpg (UniqueViolationError, IntegrityConstraintViolationError).
DEFAULT_DUPLICATE_TYPE_NAMES: frozenset[str] = frozenset({
    "IntegrityError",
    "UniqueViolation",
    "UniqueViolationError",
    "IntegrityConstraintViolationError",
})

# Fallback for drivers that only report the violation through the message text.
DEFAULT_MESSAGE_MARKERS: tuple[str, ...] = ("duplicate",)


# =================================================================================================================
# Rules
# =================================================================================================================

@dataclass(frozen=True)
class ClassificationRules:
    """
    Data-driven duplicate-entry predicate.

    The three allow-lists are independent: extending one never changes the others. Instances are immutable,
    so a single rules object can be shared between threads and tasks.
    """

    duplicate_types: tuple[type[BaseException], ...] = DEFAULT_DUPLICATE_TYPES
    duplicate_type_names: frozenset[str] = DEFAULT_DUPLICATE_TYPE_NAMES
    message_markers: tuple[str, ...] = DEFAULT_MESSAGE_MARKERS

    def with_duplicate_types(self, *types: type[BaseException]) -> "ClassificationRules":
        return replace(self, duplicate_types=self.duplicate_types + tuple(types))

    def with_duplicate_type_names(self, *names: str) -> "ClassificationRules":
        return replace(self, duplicate_type_names=self.duplicate_type_names | frozenset(names))

    def with_message_markers(self, *markers: str) -> "ClassificationRules":
        return replace(self, message_markers=self.message_markers + tuple(markers))

    @classmethod
    def from_settings(cls, settings) -> "ClassificationRules":
        """
        Build rules from a Settings object.

        `duplicate_message_markers` replaces the default markers; `duplicate_error_names` extends the
        default name allow-list.
        """
        markers = tuple(m.lower() for m in settings.duplicate_message_markers)
        return cls(
            duplicate_type_names=DEFAULT_DUPLICATE_TYPE_NAMES | frozenset(settings.duplicate_error_names),
            message_markers=markers,
        )

    # -----------------------
    # Predicate
    # -----------------------

    def matches_kind(self, exc: BaseException) -> bool:
        if isinstance(exc, self.duplicate_types):
            return True
        return any(klass.__name__ in self.duplicate_type_names for klass in type(exc).__mro__)

    def matches_message(self, exc: BaseException) -> bool:
        message = _message_of(exc)
        if message is None:
            cause = direct_cause(exc)
            message = _message_of(cause) if cause is not None else None
        if message is None:
            return False
        return _match_any(message.lower(), (marker.lower() for marker in self.message_markers))

    def is_duplicate(self, exc: BaseException) -> bool:
        return self.matches_kind(exc) or self.matches_message(exc)


DEFAULT_RULES = ClassificationRules()


# =================================================================================================================
# Helpers
# =================================================================================================================

def _match_any(msg: str, keywords: Iterable[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _message_of(exc: BaseException) -> str | None:
    """Return the exception's message, or None when it has none."""
    try:
        text = str(exc)
    except Exception:
        # A broken __str__ counts as "no message"; classification must not raise.
        return None
    return text or None


def direct_cause(exc: BaseException) -> BaseException | None:
    """
    Return the exception one level down the cause chain.

    Explicit chaining (`raise ... from cause`) wins; otherwise a SQLAlchemy DBAPIError exposes the driver
    exception it wraps as `orig`.
    """
    if exc.__cause__ is not None:
        return exc.__cause__
    orig = getattr(exc, "orig", None)
    if isinstance(orig, BaseException) and orig is not exc:
        return orig
    return None


# =================================================================================================================
# Classifier
# =================================================================================================================

def classify(failure: BaseException, rules: ClassificationRules | None = None) -> PersistenceError:
    """
    Normalize a raised exception into DuplicateEntryError or PersistenceError.

    Decision order (first match wins):
        1. already normalized        -> returned unchanged (nested guarded sessions)
        2. direct cause is duplicate -> DuplicateEntryError wrapping the cause
        3. failure is duplicate      -> DuplicateEntryError wrapping the failure
        4. anything else             -> PersistenceError wrapping the failure

    The cause is checked first because commit-time failures usually wrap the real driver error one level down.
    """
    if isinstance(failure, PersistenceError):
        return failure

    rules = rules or DEFAULT_RULES
    inner = direct_cause(failure)

    if inner is not None and rules.is_duplicate(inner):
        result: PersistenceError = DuplicateEntryError(inner)
    elif rules.is_duplicate(failure):
        result = DuplicateEntryError(failure)
    else:
        result = PersistenceError(failure)

    logger.debug(
        "classifier.classified",
        extra={
            "failure_type": type(failure).__name__,
            "wrapped_type": type(result.original).__name__,
            "kind": result.kind.value,
        },
    )
    return result


__all__ = [
    "DEFAULT_DUPLICATE_TYPES",
    "DEFAULT_DUPLICATE_TYPE_NAMES",
    "DEFAULT_MESSAGE_MARKERS",
    "DEFAULT_RULES",
    "ClassificationRules",
    "classify",
    "direct_cause",
]
