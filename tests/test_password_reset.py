"""Tests for the password reset token lifecycle."""

import pytest
from sqlalchemy.orm import Session

from app.errors import AuthenticationError, InvalidTokenError, NotFoundError, UnexpectedError, ValidationError
from app.models.user import User
from app.services.auth import CredentialService
from app.services.password_reset import PasswordResetService, generate_reset_token


def _stored_token(db_session: Session, email: str = "test@example.com") -> str | None:
    return db_session.query(User).filter(User.email == email).one().reset_token


class TestRequestReset:
    def test_issues_token_with_one_hour_expiry(
        self, reset_service: PasswordResetService, db_session: Session, clock, test_user: dict
    ):
        reset_service.request_reset(test_user["email"])
        user = db_session.query(User).filter(User.email == test_user["email"]).one()
        assert len(user.reset_token) == 64
        assert user.reset_token_expires == clock.now.replace(hour=13)

    def test_emails_link_but_never_returns_token(
        self, reset_service: PasswordResetService, db_session: Session, mailer, test_user: dict
    ):
        message = reset_service.request_reset(test_user["email"])
        token = _stored_token(db_session)

        assert token not in message
        assert len(mailer.sent) == 1
        sent = mailer.sent[0]
        assert sent["to"] == test_user["email"]
        assert f"http://localhost:3000/reset-password?token={token}" in sent["html"]

    def test_lookup_is_case_insensitive(self, reset_service: PasswordResetService, mailer, test_user: dict):
        reset_service.request_reset("TEST@example.com")
        assert mailer.sent[0]["to"] == "test@example.com"

    def test_unknown_email(self, reset_service: PasswordResetService, mailer):
        with pytest.raises(NotFoundError):
            reset_service.request_reset("nobody@example.com")
        assert mailer.sent == []

    def test_email_failure_is_unexpected_error(self, reset_service: PasswordResetService, mailer, test_user: dict):
        mailer.fail_with = TimeoutError("smtp timed out")
        with pytest.raises(UnexpectedError) as exc_info:
            reset_service.request_reset(test_user["email"])
        assert "smtp" not in str(exc_info.value)

    def test_generated_tokens_are_random_hex(self):
        tokens = {generate_reset_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(len(t) == 64 and int(t, 16) >= 0 for t in tokens)


class TestCompleteReset:
    def test_reset_within_window(
        self,
        reset_service: PasswordResetService,
        credential_service: CredentialService,
        db_session: Session,
        clock,
        test_user: dict,
    ):
        reset_service.request_reset(test_user["email"])
        token = _stored_token(db_session)

        clock.advance(minutes=30)
        reset_service.complete_reset(token, "newpass1")

        user = db_session.query(User).filter(User.email == test_user["email"]).one()
        assert user.reset_token is None
        assert user.reset_token_expires is None

        with pytest.raises(AuthenticationError):
            credential_service.login(test_user["email"], test_user["password"])
        assert credential_service.login(test_user["email"], "newpass1").user.id == test_user["user_id"]

    def test_token_is_single_use(
        self, reset_service: PasswordResetService, db_session: Session, clock, test_user: dict
    ):
        reset_service.request_reset(test_user["email"])
        token = _stored_token(db_session)
        clock.advance(minutes=30)

        reset_service.complete_reset(token, "newpass1")
        with pytest.raises(InvalidTokenError):
            reset_service.complete_reset(token, "again1")

    def test_expired_token(self, reset_service: PasswordResetService, db_session: Session, clock, test_user: dict):
        reset_service.request_reset(test_user["email"])
        token = _stored_token(db_session)

        clock.advance(hours=1, seconds=1)
        with pytest.raises(InvalidTokenError):
            reset_service.complete_reset(token, "newpass1")
        # Inert, but still stored until the next request or reset.
        assert _stored_token(db_session) == token

    def test_expiry_boundary_is_exclusive(
        self, reset_service: PasswordResetService, db_session: Session, clock, test_user: dict
    ):
        reset_service.request_reset(test_user["email"])
        token = _stored_token(db_session)

        clock.advance(hours=1)
        with pytest.raises(InvalidTokenError):
            reset_service.complete_reset(token, "newpass1")

    def test_new_request_invalidates_previous_token(
        self, reset_service: PasswordResetService, db_session: Session, test_user: dict
    ):
        reset_service.request_reset(test_user["email"])
        first = _stored_token(db_session)
        reset_service.request_reset(test_user["email"])
        second = _stored_token(db_session)
        assert first != second

        with pytest.raises(InvalidTokenError):
            reset_service.complete_reset(first, "newpass1")
        reset_service.complete_reset(second, "newpass1")

    def test_unknown_token(self, reset_service: PasswordResetService):
        with pytest.raises(InvalidTokenError):
            reset_service.complete_reset("never-issued", "newpass1")

    def test_short_password_keeps_token(
        self, reset_service: PasswordResetService, db_session: Session, test_user: dict
    ):
        reset_service.request_reset(test_user["email"])
        token = _stored_token(db_session)

        with pytest.raises(ValidationError):
            reset_service.complete_reset(token, "abc")
        assert _stored_token(db_session) == token
        reset_service.complete_reset(token, "abcdef")

    def test_invalid_token_checked_before_password(self, reset_service: PasswordResetService):
        with pytest.raises(InvalidTokenError):
            reset_service.complete_reset("never-issued", "abc")

    def test_concurrent_consumer_loses(
        self, reset_service: PasswordResetService, db_session: Session, monkeypatch: pytest.MonkeyPatch, test_user: dict
    ):
        """If the token is consumed between lookup and update, the update matches nothing."""
        reset_service.request_reset(test_user["email"])
        token = _stored_token(db_session)
        user = db_session.query(User).filter(User.email == test_user["email"]).one()

        lookup = reset_service.store.get_by_reset_token

        def consumed_meanwhile(token, now):
            found = lookup(token, now)
            reset_service.store.update(user.id, reset_token=None, reset_token_expires=None)
            return found

        monkeypatch.setattr(reset_service.store, "get_by_reset_token", consumed_meanwhile)
        with pytest.raises(InvalidTokenError):
            reset_service.complete_reset(token, "newpass1")
