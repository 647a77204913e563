"""Password reset service.

A user's reset state is the (reset_token, reset_token_expires) pair:

- request_reset stores a fresh random token expiring after RESET_TOKEN_EXPIRE_MINUTES,
  overwriting any earlier one, and emails a link carrying it.
- complete_reset accepts the token only while it is stored and unexpired, then
  rotates the password hash and clears both fields in one UPDATE.

An expired token stays in the row but no longer matches any lookup.
"""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from html import escape

from app.config import get_settings
from app.errors import InvalidTokenError, NotFoundError, UnexpectedError
from app.models.user import User
from app.services.auth import validate_password
from app.services.mailer import EmailSender
from app.services.passwords import PasswordHasher
from app.services.user_store import UserStore

logger = logging.getLogger("gatekeep")

RESET_REQUESTED_MESSAGE = "A password reset link has been sent to your email"
RESET_COMPLETED_MESSAGE = "Password updated successfully"


def utcnow() -> datetime:
    return datetime.utcnow()


def generate_reset_token() -> str:
    """256 bits of randomness, hex encoded."""
    return secrets.token_hex(32)


class PasswordResetService:
    """Issues and consumes single-use, time-limited reset tokens."""

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        email_sender: EmailSender,
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = generate_reset_token,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.hasher = hasher
        self.email_sender = email_sender
        self.clock = clock
        self.token_factory = token_factory
        self.token_lifetime = timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
        self.frontend_url = settings.FRONTEND_URL

    def request_reset(self, email: str) -> str:
        """Issue a reset token for the account and email the link.

        Raises NotFoundError for unknown emails. Returns a confirmation message, never the token.
        """
        user = self.store.get_by_email(email)
        if not user:
            raise NotFoundError()

        token = self.token_factory()
        expires = self.clock() + self.token_lifetime
        self.store.update(user.id, reset_token=token, reset_token_expires=expires)
        logger.info("Password reset requested for user %s, expires %s", user.id, expires.isoformat())

        reset_url = self.build_reset_url(token)
        try:
            self.email_sender.send(user.email, "Password reset", self._render_email(reset_url))
        except Exception as exc:
            logger.exception("Failed to send password reset email to user %s", user.id)
            raise UnexpectedError() from exc

        return RESET_REQUESTED_MESSAGE

    def complete_reset(self, token: str, new_password: str) -> str:
        """Consume a reset token and set a new password."""
        now = self.clock()
        user = self.store.get_by_reset_token(token, now)
        if not user:
            raise InvalidTokenError()

        validate_password(new_password)

        # Guarded on the token so two concurrent submissions can't both succeed.
        changed = self.store.update(
            user.id,
            User.reset_token == token,
            User.reset_token_expires > now,
            password_hash=self.hasher.hash(new_password),
            reset_token=None,
            reset_token_expires=None,
        )
        if not changed:
            raise InvalidTokenError()

        logger.info("Password reset completed for user %s", user.id)
        return RESET_COMPLETED_MESSAGE

    def build_reset_url(self, token: str) -> str:
        return f"{self.frontend_url.rstrip('/')}/reset-password?token={token}"

    def _render_email(self, reset_url: str) -> str:
        minutes = int(self.token_lifetime.total_seconds() // 60)
        link = escape(reset_url)
        return (
            "<p>Click the link below to reset your password:</p>\n"
            f'<a href="{link}">{link}</a>\n'
            f"<p>This link expires in {minutes} minutes.</p>"
        )
