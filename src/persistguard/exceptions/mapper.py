from contextlib import contextmanager
from typing import Iterator, NoReturn

from .base import PersistenceError
from .classifier import ClassificationRules, classify


def raise_normalized(exc: BaseException, rules: ClassificationRules | None = None) -> NoReturn:
    """
    Classify an already-caught exception and raise the normalized error in its place.

    The normalized error keeps its wrapped exception as `__cause__`; an exception that is already a
    PersistenceError is re-raised as is.
    """
    error = classify(exc, rules)
    if error is exc:
        raise error
    raise error from error.original


# -----------------------
# Context manager to DRY error translation at every call site
# -----------------------
@contextmanager
def translate_errors(rules: ClassificationRules | None = None) -> Iterator[None]:
    """
    Usage:
        with translate_errors():
            session.add(entity)
            session.commit()

        async with ...:
            with translate_errors():
                await session.commit()

    Any Exception escaping the block is re-raised as DuplicateEntryError / PersistenceError. Nothing is
    rolled back, retried or swallowed here: the transaction outcome is left exactly as the session produced it.
    """
    try:
        yield
    except PersistenceError:
        raise
    except Exception as exc:
        raise_normalized(exc, rules)


__all__ = ["raise_normalized", "translate_errors"]
