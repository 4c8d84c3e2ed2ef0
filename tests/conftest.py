"""Pytest fixtures and configuration for FIVLO tests."""

import pytest
import uuid
from datetime import date, datetime, time
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from fivlo.clock import FixedClock
from fivlo.database.database import Base
from fivlo.models.task import TaskInstance


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# 2025-01-15 12:00 in Asia/Seoul
FIXED_NOW = datetime(2025, 1, 15, 3, 0, 0)
FIXED_TODAY = date(2025, 1, 15)


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture
def free_user_id():
    return "free-user-456"


@pytest.fixture(scope="function")
def db_session(test_user_id, free_user_id):
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test, with
    a premium test user and a free-plan user.
    """
    from fivlo.database.models import UserDB

    # Create engine with StaticPool for in-memory database
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    now = datetime.utcnow()
    session.add(UserDB(
        id=test_user_id,
        email="test@example.com",
        name="Test User",
        timezone="Asia/Seoul",
        is_premium=True,
        coins=0,
        created_at=now,
        updated_at=now,
    ))
    session.add(UserDB(
        id=free_user_id,
        email="free@example.com",
        name="Free User",
        timezone="Asia/Seoul",
        is_premium=False,
        coins=0,
        created_at=now,
        updated_at=now,
    ))
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def fixed_clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def test_user(db_session, test_user_id):
    """The premium test user as stored."""
    from fivlo.database.user_repository import UserRepository
    return UserRepository(db_session).get(test_user_id)


@pytest.fixture
def free_user(db_session, free_user_id):
    from fivlo.database.user_repository import UserRepository
    return UserRepository(db_session).get(free_user_id)


@pytest.fixture
def make_instance(test_user_id):
    """Factory for one-off TaskInstance objects."""
    def _make(due_date: date, *, user_id=None, is_completed=False, title="Task", template_id=None, due_time=None):
        now = datetime.utcnow()
        return TaskInstance(
            id=str(uuid.uuid4()),
            user_id=user_id or test_user_id,
            template_id=template_id,
            title=title,
            due_date=due_date,
            due_time=due_time,
            is_completed=is_completed,
            completed_at=now if is_completed else None,
            created_at=now,
            updated_at=now,
        )
    return _make


@pytest.fixture
def make_session(test_user_id):
    """Factory for SessionRecord objects (started_at is naive UTC)."""
    from fivlo.models.session import SessionRecord, SessionStatus, SessionType

    def _make(started_at: datetime, *, goal="Study", duration_min=25, status=SessionStatus.COMPLETED,
              type=SessionType.FOCUS, user_id=None):
        return SessionRecord(
            id=str(uuid.uuid4()),
            user_id=user_id or test_user_id,
            goal=goal,
            type=type,
            duration_min=duration_min,
            status=status,
            started_at=started_at,
            ended_at=None,
        )
    return _make


def _client_for(db_session: Session, user, clock, monkeypatch):
    from fivlo.api.app import app
    from fivlo.auth.dependencies import get_current_user
    from fivlo.clock import get_clock
    from fivlo.database.database import get_db
    from fivlo.integrations.openai_client import OpenAIClient, get_openai_client

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_openai_client] = lambda: OpenAIClient(api_key=None)
    return app


@pytest.fixture
def test_client(db_session: Session, test_user, fixed_clock, monkeypatch):
    """FastAPI test client authenticated as the premium test user."""
    app = _client_for(db_session, test_user, fixed_clock, monkeypatch)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def free_client(db_session: Session, free_user, fixed_clock, monkeypatch):
    """FastAPI test client authenticated as the free-plan user."""
    app = _client_for(db_session, free_user, fixed_clock, monkeypatch)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def at_time():
    """Build a naive UTC datetime from a local Asia/Seoul day and time."""
    from fivlo.clock import resolve_timezone, to_utc_naive

    def _at(day: date, hour: int, minute: int = 0):
        return to_utc_naive(datetime.combine(day, time(hour, minute), tzinfo=resolve_timezone("Asia/Seoul")))
    return _at
