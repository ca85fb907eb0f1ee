import pytest
from sqlalchemy.exc import OperationalError

from persistguard.config.settings import get_settings
from persistguard.db import session as db_session_module
from persistguard.exceptions import DuplicateEntryError, PersistenceError
from persistguard.session import GuardedAsyncSession
from persistguard.tests.test_fixtures.models import Base, Account

_CACHED = (
    get_settings,
    db_session_module.get_engine,
    db_session_module.get_sessionmaker,
    db_session_module.get_classification_rules,
)


@pytest.fixture
async def configured_db(monkeypatch):
    """Point the cached engine at a private in-memory database for the duration of a test."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("DUPLICATE_ERROR_NAMES", "EntityExistsError")
    for fn in _CACHED:
        fn.cache_clear()

    engine = db_session_module.get_engine()
    yield engine

    await engine.dispose()
    for fn in _CACHED:
        fn.cache_clear()


async def test_dependency_yields_guarded_session(configured_db):
    sessions = db_session_module.get_async_session()
    session = await sessions.__anext__()
    try:
        assert isinstance(session, GuardedAsyncSession)
        assert session.rules is db_session_module.get_classification_rules()
        assert "EntityExistsError" in session.rules.duplicate_type_names
    finally:
        await sessions.aclose()


async def test_dependency_session_normalizes_duplicates(configured_db, sample_account_data):
    sessions = db_session_module.get_async_session()
    session = await sessions.__anext__()
    try:
        # Each pooled connection gets its own in-memory database, so create the table through this session.
        await session.run_sync(lambda sync_session: Base.metadata.create_all(sync_session.connection()))

        session.add(Account(**sample_account_data))
        await session.flush()
        session.add(Account(**sample_account_data))

        with pytest.raises(DuplicateEntryError):
            await session.flush()

        await session.rollback()
    finally:
        await sessions.aclose()


async def test_failure_while_closing_is_normalized(monkeypatch, mock_async_session):
    """
    Behavior:
        - The request is served, then closing the session at teardown fails.
        - Expect PersistenceError out of the dependency, not the raw OperationalError.
    """
    mock_async_session.__aexit__.side_effect = OperationalError("ROLLBACK", {}, Exception("disk I/O error"))
    monkeypatch.setattr(db_session_module, "get_sessionmaker", lambda: lambda: mock_async_session)

    sessions = db_session_module.get_async_session()
    session = await sessions.__anext__()

    assert session.wrapped is mock_async_session
    with pytest.raises(PersistenceError) as exc_info:
        await sessions.__anext__()

    assert isinstance(exc_info.value.original, OperationalError)
