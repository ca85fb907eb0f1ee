import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from persistguard.config.settings import Settings
from persistguard.exceptions import (
    ClassificationRules,
    DEFAULT_RULES,
    DuplicateEntryError,
    ErrorKind,
    PersistenceError,
    classify,
    direct_cause,
)


# Stand-ins for driver exceptions the classifier has never heard of.
class ConstraintViolation(Exception):
    pass


class TransactionRolledBack(Exception):
    pass


class UniqueViolation(Exception):
    """Same class name as psycopg.errors.UniqueViolation."""


class BrokenMessage(Exception):
    def __str__(self) -> str:
        raise RuntimeError("cannot render message")


def _chain(outer: BaseException, cause: BaseException) -> BaseException:
    outer.__cause__ = cause
    return outer


class TestClassifyScenarios:

    def test_constraint_violation_with_duplicate_message(self):
        """
        Behavior:
            - Unknown exception kind whose message says "duplicate key value violates unique constraint".
            - Expect DuplicateEntryError wrapping that exception.

        Importance:
            - The message heuristic is what makes drivers that only raise generic errors portable.
        """
        failure = ConstraintViolation("duplicate key value violates unique constraint")

        result = classify(failure)

        assert isinstance(result, DuplicateEntryError)
        assert result.original is failure
        assert result.kind is ErrorKind.DUPLICATE_ENTRY

    def test_integrity_error_without_message_or_cause(self):
        failure = sqlite3.IntegrityError()

        result = classify(failure)

        assert isinstance(result, DuplicateEntryError)
        assert result.original is failure

    def test_generic_driver_error_is_persistence_failure(self):
        failure = OperationalError("SELECT 1", {}, Exception("connection timed out"))

        result = classify(failure)

        assert type(result) is PersistenceError
        assert result.kind is ErrorKind.PERSISTENCE_FAILURE
        assert result.original is failure

    def test_rollback_wrapping_constraint_violation_prefers_the_cause(self):
        """
        Behavior:
            - Outer "rolled back" exception whose __cause__ is an integrity violation.
            - Expect DuplicateEntryError wrapping the inner cause, not the outer exception.

        Importance:
            - Commit-time failures wrap the real driver error one level down; the inner one is more specific.
        """
        inner = sqlite3.IntegrityError("UNIQUE constraint failed: accounts.email")
        failure = _chain(TransactionRolledBack("transaction rolled back"), inner)

        result = classify(failure)

        assert isinstance(result, DuplicateEntryError)
        assert result.original is inner
        assert result.__cause__ is inner


class TestDuplicatePredicate:

    def test_sqlalchemy_integrity_error_wraps_driver_error(self):
        # SQLAlchemy keeps the DBAPI exception on `.orig`; it counts as the direct cause.
        orig = sqlite3.IntegrityError("UNIQUE constraint failed: accounts.email")
        failure = IntegrityError("INSERT INTO accounts ...", {}, orig)

        result = classify(failure)

        assert isinstance(result, DuplicateEntryError)
        assert result.original is orig

    def test_driver_class_name_is_matched(self):
        result = classify(UniqueViolation("boom"))
        assert isinstance(result, DuplicateEntryError)

    def test_subclass_of_matched_name_is_matched(self):
        class MyDriverIntegrityError(sqlite3.IntegrityError):
            pass

        assert isinstance(classify(MyDriverIntegrityError("boom")), DuplicateEntryError)

    @pytest.mark.parametrize("message", [
        "Duplicate entry 'ada@example.com' for key 'accounts.email'",
        "DUPLICATE KEY",
        "ERROR: duplicate key value violates unique constraint \"uq_accounts_email\"",
    ])
    def test_message_match_is_case_insensitive(self, message):
        assert isinstance(classify(RuntimeError(message)), DuplicateEntryError)

    def test_unrelated_message_is_not_duplicate(self):
        result = classify(RuntimeError("no such table: accounts"))
        assert type(result) is PersistenceError

    def test_empty_message_falls_back_to_cause_message(self):
        """
        Behavior:
            - Failure -> cause without message -> cause's cause says "duplicate".
            - The cause matches through its own cause's message, so it wins.
        """
        deepest = RuntimeError("Duplicate entry 'x' for key 'email'")
        cause = _chain(RuntimeError(), deepest)
        failure = _chain(TransactionRolledBack("commit failed"), cause)

        result = classify(failure)

        assert isinstance(result, DuplicateEntryError)
        assert result.original is cause

    def test_no_message_and_no_matching_kind(self):
        result = classify(RuntimeError())

        assert type(result) is PersistenceError
        assert result.original is not None

    def test_broken_str_does_not_raise(self):
        failure = BrokenMessage()

        result = classify(failure)

        assert type(result) is PersistenceError
        assert result.original is failure

    def test_non_duplicate_cause_does_not_hide_duplicate_failure(self):
        failure = _chain(IntegrityError("INSERT", {}, None), ValueError("bad value"))

        result = classify(failure)

        assert isinstance(result, DuplicateEntryError)
        assert result.original is failure


class TestIdempotence:

    def test_normalized_error_is_returned_unchanged(self):
        error = DuplicateEntryError(sqlite3.IntegrityError("UNIQUE constraint failed"))
        assert classify(error) is error

    def test_generic_normalized_error_is_not_upgraded(self):
        # Even with "duplicate" in the wrapped message, an already-normalized error keeps its kind.
        error = PersistenceError(RuntimeError("duplicate"))
        assert classify(error) is error


class TestDirectCause:

    def test_explicit_cause_wins_over_orig(self):
        orig = sqlite3.IntegrityError("from orig")
        explicit = ValueError("from __cause__")
        failure = _chain(IntegrityError("INSERT", {}, orig), explicit)

        assert direct_cause(failure) is explicit

    def test_no_cause(self):
        assert direct_cause(RuntimeError("x")) is None


class TestClassificationRules:

    def test_extra_type_name(self):
        rules = DEFAULT_RULES.with_duplicate_type_names("ConstraintViolation")

        assert isinstance(classify(ConstraintViolation("boom"), rules), DuplicateEntryError)
        # Default rules are untouched
        assert type(classify(ConstraintViolation("boom"))) is PersistenceError

    def test_extra_type(self):
        rules = ClassificationRules().with_duplicate_types(LookupError)
        assert isinstance(classify(KeyError("id"), rules), DuplicateEntryError)

    def test_extra_message_marker(self):
        rules = DEFAULT_RULES.with_message_markers("Already Exists")

        assert isinstance(classify(RuntimeError("entity already exists"), rules), DuplicateEntryError)
        # "duplicate" keeps working next to the new marker
        assert isinstance(classify(RuntimeError("duplicate"), rules), DuplicateEntryError)

    def test_message_heuristic_can_be_narrowed(self):
        rules = ClassificationRules(message_markers=("unique constraint",))
        assert type(classify(RuntimeError("duplicate"), rules)) is PersistenceError

    def test_rules_are_immutable(self):
        with pytest.raises(AttributeError):
            DEFAULT_RULES.message_markers = ()

    def test_from_settings(self):
        settings = Settings(
            DUPLICATE_MESSAGE_MARKERS="already exists, Conflict",
            DUPLICATE_ERROR_NAMES="EntityExistsError",
        )

        rules = ClassificationRules.from_settings(settings)

        class EntityExistsError(Exception):
            pass

        assert rules.message_markers == ("already exists", "conflict")
        assert "EntityExistsError" in rules.duplicate_type_names
        assert "IntegrityError" in rules.duplicate_type_names
        assert isinstance(classify(EntityExistsError(), rules), DuplicateEntryError)
        assert isinstance(classify(RuntimeError("409 CONFLICT"), rules), DuplicateEntryError)


def test_concurrent_classification_is_independent():
    failures = [
        sqlite3.IntegrityError("UNIQUE constraint failed") if i % 2 else RuntimeError("timeout")
        for i in range(200)
    ]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(classify, failures))

    for failure, result in zip(failures, results):
        assert result.original is failure
        expected = DuplicateEntryError if isinstance(failure, sqlite3.IntegrityError) else PersistenceError
        assert type(result) is expected
