"""Shared pytest fixtures: in-memory database, injected settings, recording mailer."""

import os

# Must be set before crm.db.session builds its engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crm.core.config import Settings
from crm.db.base import Base
from crm.db.session import get_db
from crm.models import UsersGroup
from crm.services.auth_service import AuthService, get_auth_service
from crm.services.invitation_service import InvitationService, get_invitation_service
from crm.services.notification_service import NotificationService
from crm.services.token_service import TokenService, get_token_service

STRONG_PASSWORD = "Password123"


class RecordingNotifier(NotificationService):
    """Captures outgoing emails instead of talking to SMTP."""

    def __init__(self, settings):
        super().__init__(settings)
        self.sent = []

    def _send(self, to_email, subject, body):
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return True


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="sqlite://",
        DEBUG=False,
        JWT_SECRET="test-secret",
        SMTP_HOST="",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier(test_settings):
    return RecordingNotifier(test_settings)


@pytest.fixture
def tokens(test_settings):
    return TokenService(test_settings)


@pytest.fixture
def auth(test_settings, tokens, notifier):
    return AuthService(test_settings, tokens=tokens, notifier=notifier)


@pytest.fixture
def invitations(test_settings, notifier):
    return InvitationService(test_settings, notifier=notifier)


@pytest.fixture
def group(db):
    group = UsersGroup(name="Growth team")
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@pytest.fixture
def make_user(db, auth):
    """Factory creating active users with a known strong password."""
    counter = {"n": 0}

    def _make(email=None, password=STRONG_PASSWORD, **fields):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        return auth.create_user(db, email, password, **fields)

    return _make


@pytest.fixture
def user(make_user):
    return make_user(email="Info@Example.com", username="info", full_name="Info Desk")


@pytest.fixture
def client(session_factory, auth, invitations, tokens):
    from crm.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_auth_service] = lambda: auth
    app.dependency_overrides[get_invitation_service] = lambda: invitations
    app.dependency_overrides[get_token_service] = lambda: tokens
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
