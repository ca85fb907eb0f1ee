import sqlite3

from persistguard.exceptions import DuplicateEntryError, ErrorKind, PersistenceError


def test_duplicate_entry_is_a_persistence_error():
    error = DuplicateEntryError(sqlite3.IntegrityError("UNIQUE constraint failed"))

    assert isinstance(error, PersistenceError)
    assert error.kind is ErrorKind.DUPLICATE_ENTRY
    assert error.error_code == "duplicate"
    assert error.http_status() == 409


def test_persistence_error_defaults():
    original = RuntimeError("connection reset by peer")
    error = PersistenceError(original)

    assert error.kind is ErrorKind.PERSISTENCE_FAILURE
    assert error.http_status() == 500
    assert error.original is original
    assert error.__cause__ is original
    assert error.__suppress_context__ is True


def test_payload_never_leaks_raw_database_text():
    error = DuplicateEntryError(sqlite3.IntegrityError("UNIQUE constraint failed: accounts.email"))

    payload = error.to_payload()

    assert payload == {"detail": "Entry already exists", "code": "duplicate"}
    assert "accounts.email" not in str(payload)


def test_str_names_the_wrapped_type_only():
    error = PersistenceError(RuntimeError("secret connection string"), message="Could not load account")

    assert str(error) == "Could not load account (code: persistence_failure; caused by RuntimeError)"
    assert "secret" not in str(error)
