"""
Normalized exceptions raised across the persistence boundary.

Guarded sessions never let a raw SQLAlchemy / DBAPI exception reach the caller. Every failure surfaces as
exactly one of the exceptions below, with the original exception attached as `original` (and `__cause__`)
so the full diagnostic chain stays reachable.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Canonical kinds a persistence failure is normalized into."""

    DUPLICATE_ENTRY = "duplicate"
    PERSISTENCE_FAILURE = "persistence_failure"


class PersistenceError(Exception):
    """
    Generic persistence-layer failure (kind `persistence_failure`).

    Base of the normalized hierarchy: `except PersistenceError` catches every error a guarded session raises.

    - original: the exception this error wraps (also set as `__cause__`)
    - message: human-friendly message, safe to show to clients (never the raw DB text)
    - kind: the normalized ErrorKind
    """

    kind: ErrorKind = ErrorKind.PERSISTENCE_FAILURE
    default_message = "Persistence operation failed"

    # Map canonical kind -> default HTTP status.
    KIND_TO_STATUS = {
        ErrorKind.DUPLICATE_ENTRY: 409,
        ErrorKind.PERSISTENCE_FAILURE: 500,
    }

    def __init__(self, original: BaseException | None = None, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.original = original
        # Assigning __cause__ also sets __suppress_context__, same as `raise ... from original`.
        self.__cause__ = original

    @property
    def error_code(self) -> str:
        return self.kind.value

    def __str__(self) -> str:
        if self.original is None:
            return f"{self.message} (code: {self.error_code})"
        return f"{self.message} (code: {self.error_code}; caused by {type(self.original).__name__})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(original={self.original!r}, message={self.message!r})"

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict suitable for HTTP responses:
            {"detail": "Entry already exists", "code": "duplicate"}
        The wrapped exception is intentionally left out of the payload.
        """
        return {"detail": self.message, "code": self.error_code}

    def http_status(self) -> int:
        return self.KIND_TO_STATUS.get(self.kind, 500)


class DuplicateEntryError(PersistenceError):
    """A write collided with a uniqueness/integrity constraint (kind `duplicate`)."""

    kind = ErrorKind.DUPLICATE_ENTRY
    default_message = "Entry already exists"


__all__ = [
    "ErrorKind",
    "PersistenceError",
    "DuplicateEntryError",
]
