"""
Pytest configuration and fixtures

Tests run against a throwaway SQLite file. Every table is emptied after each
test, so nothing created during one test is visible to the next.
Redis is never contacted: report markers and locks use the in-memory store
unless a test injects a FakeRedis.
"""
import os
import sys
import tempfile
from datetime import date
from unittest.mock import patch
from uuid import uuid4

import pytest

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"fitsocial_test_{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_PATH}"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["DEFAULT_TIMEZONE"] = "UTC"
os.environ["LOG_FORMAT"] = "text"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"

from core.database import Base, SessionLocal, engine, init_db  # noqa: E402
from models import User, UserActivity  # noqa: E402


class FakeRedis:
    """Minimal in-memory Redis mock for unit tests."""

    def __init__(self):
        self._store: dict = {}
        self._ttls: dict = {}

    def get(self, key):
        return self._store.get(key)

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self._store:
            return None
        self._store[key] = value
        if ex:
            self._ttls[key] = ex
        return True

    def delete(self, *keys):
        for k in keys:
            self._store.pop(k, None)
            self._ttls.pop(k, None)

    def exists(self, key):
        return key in self._store

    def ping(self):
        return True


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    init_db()
    yield
    engine.dispose()
    if os.path.exists(_TEST_DB_PATH):
        os.remove(_TEST_DB_PATH)


@pytest.fixture(autouse=True)
def _isolate_report_state():
    """Fresh dispatchers and a fresh process-local marker store per test."""
    import services.marker_store as marker_store
    import services.report_dispatcher as report_dispatcher

    marker_store._local_store = None
    report_dispatcher._dispatchers.clear()
    with patch("services.marker_store.get_redis_client", return_value=None):
        yield
    report_dispatcher._dispatchers.clear()
    marker_store._local_store = None


@pytest.fixture(scope="function")
def db_session():
    """
    Database session for one test.

    All rows are deleted afterwards; application code is free to commit.
    """
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def test_user(db_session):
    user = User(
        email=f"test_{uuid4().hex[:8]}@example.com",
        first_name="Jamie",
        last_name="Rivera",
        timezone="UTC",
        email_notifications=True,
        weekly_reports=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def add_activity(db_session):
    """Factory: add_activity(user, "run", date(...), duration=..., calories=..., distance=...)."""

    def _add(user, activity_type: str, activity_date: date, duration: int = 30, calories: int = 300, distance: float = 0):
        activity = UserActivity(
            user_id=user.id,
            activity_type=activity_type,
            title=f"{activity_type} session",
            duration=duration,
            calories=calories,
            distance=distance,
            activity_date=activity_date,
        )
        db_session.add(activity)
        db_session.commit()
        return activity

    return _add
