# backend/tests/conftest.py
"""
Pytest configuration for the mentorship backend.

The environment is pinned BEFORE any app import: every test runs against a
throwaway SQLite file (a file, not ``:memory:``, so the threaded booking
tests can open independent connections) and with process-local booking
locks only.
"""

import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="mentorship-tests-")

# CRITICAL: Set testing configuration BEFORE any app imports!
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR}/test.db"
os.environ["BOOKING_LOCK_REDIS_URL"] = ""
os.environ["CELERY_BROKER_URL"] = "memory://"

from decimal import Decimal
from typing import Callable, Dict, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from app.api.dependencies import get_db
from app.core.enums import MentorStatus
from app.database import Base, SessionLocal, engine
from app.domain.availability import WeeklySchedule
from app.main import app
import app.models as _models  # noqa: F401
from app.models.mentor import MentorProfile
from app.models.user import User
from app.services import notification_service as notification_module
from tests.helpers import RecordingEmitter, auth_headers_for


@pytest.fixture(scope="function")
def db():
    """
    Fresh schema and session per test.

    Tables are created on the application engine (pointed at the test file
    above) and dropped afterwards, so services that open their own sessions
    see the same data.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def emitter():
    """Capture delivered notifications instead of logging them."""
    recorder = RecordingEmitter()
    previous = notification_module._default_emitter
    notification_module.set_default_emitter(recorder)
    yield recorder
    notification_module.set_default_emitter(previous)


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(
        first_name: str = "Test",
        last_name: str = "User",
        balance: Decimal = Decimal("0.00"),
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=f"{first_name.lower()}.{counter['n']}@example.com",
            first_name=first_name,
            last_name=last_name,
            balance=balance,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_mentor(db: Session, make_user) -> Callable[..., User]:
    def _make(
        first_name: str = "Mona",
        hourly_rate: Decimal = Decimal("50.00"),
        status: MentorStatus = MentorStatus.APPROVED,
        schedule: Optional[WeeklySchedule] = None,
    ) -> User:
        user = make_user(first_name=first_name, last_name="Mentor")
        profile = MentorProfile(
            user_id=user.id,
            hourly_rate=hourly_rate,
            status=status.value,
            bio="Backend engineer",
            weekly_availability=(schedule or WeeklySchedule()).to_json(),
        )
        db.add(profile)
        db.commit()
        return user

    return _make


@pytest.fixture
def mentor(make_mentor) -> User:
    return make_mentor()


@pytest.fixture
def mentee(make_user) -> User:
    return make_user(first_name="Milo", last_name="Mentee", balance=Decimal("200.00"))


@pytest.fixture
def mentor_headers(mentor: User) -> Dict[str, str]:
    return auth_headers_for(mentor)


@pytest.fixture
def mentee_headers(mentee: User) -> Dict[str, str]:
    return auth_headers_for(mentee)
