"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.user import User  # noqa: F401
from app.services.auth import CredentialService
from app.services.jwt import get_jwt_service
from app.services.mailer import EmailSender, get_email_sender
from app.services.password_reset import PasswordResetService
from app.services.passwords import PasswordHasher
from app.services.user_store import UserStore


class RecordingEmailSender(EmailSender):
    """Keeps sent messages in memory instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail_with: Exception | None = None

    def send(self, to: str, subject: str, html_body: str) -> None:
        if self.fail_with:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "html": html_body})


class FakeClock:
    """Controllable replacement for utcnow."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()


@pytest.fixture(name="hasher", scope="session")
def hasher_fixture() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture(name="credential_service")
def credential_service_fixture(db_session: Session, hasher: PasswordHasher) -> CredentialService:
    return CredentialService(UserStore(db_session), hasher, get_jwt_service())


@pytest.fixture(name="reset_service")
def reset_service_fixture(
    db_session: Session, hasher: PasswordHasher, mailer: RecordingEmailSender, clock: FakeClock
) -> PasswordResetService:
    return PasswordResetService(UserStore(db_session), hasher, mailer, clock=clock)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, mailer: RecordingEmailSender):
    """Create a test client with overridden DB and email dependencies."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(credential_service: CredentialService):
    """Create a test user and return its profile data and token."""
    result = credential_service.register("test@example.com", "password123", "Test", "User")
    return {
        "user_id": result.user.id,
        "email": result.user.email,
        "password": "password123",
        "token": result.token,
    }
