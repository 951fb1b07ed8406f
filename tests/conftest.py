"""
Shared test fixtures
"""

import pytest
from datetime import timedelta
from sqlalchemy.orm import sessionmaker

from event_manager.core.db import Base, build_engine
from event_manager.models import ROLE_ADMIN, ROLE_USER, Event, User
from event_manager.utils.clock import utcnow
from event_manager.utils.security import create_access_token, hash_password

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_event_manager.db"
engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "secret123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def make_user(db_session):
    """Factory for active, verified users"""
    def _make_user(email, roles=None, **kwargs):
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("is_email_verified", True)
        user = User(
            email=email,
            password=TEST_PASSWORD_HASH,
            roles=roles or [ROLE_USER],
            **kwargs
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user

@pytest.fixture
def organizer(make_user):
    return make_user("organizer@example.com", first_name="Olive", last_name="Organizer")

@pytest.fixture
def attendee(make_user):
    return make_user("attendee@example.com", first_name="Alan", last_name="Attendee")

@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", roles=[ROLE_ADMIN], first_name="Ada", last_name="Admin")

@pytest.fixture
def make_event(db_session, organizer):
    """Factory for events starting a week from now"""
    def _make_event(title="Python Meetup", created_by=None, **kwargs):
        kwargs.setdefault("start_date", utcnow() + timedelta(days=7))
        event = Event(
            title=title,
            created_by_id=(created_by or organizer).id,
            **kwargs
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event
    return _make_event

@pytest.fixture
def upcoming_event(make_event):
    return make_event(location="Berlin", max_participants=10)

@pytest.fixture
def client(db_session):
    """API client bound to the test database"""
    from fastapi.testclient import TestClient

    from main import app
    from event_manager.core.db import get_db
    from event_manager.utils.security import rate_limiter

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    rate_limiter.clear()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

@pytest.fixture
def auth_headers():
    """Bearer token header for a user"""
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user).access_token}"}
    return _auth_headers
