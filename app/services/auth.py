"""Credential service: registration, login and bearer token verification."""

import logging
import re
from dataclasses import dataclass
from typing import Any

from app.config import get_settings
from app.errors import AuthenticationError, ConflictError, ValidationError
from app.models.user import User
from app.services.jwt import JWTService
from app.services.passwords import PasswordHasher
from app.services.user_store import UserStore

logger = logging.getLogger("gatekeep")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class UserProfile:
    """Public view of a user. Never carries the password hash."""

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(id=user.id, email=user.email, first_name=user.first_name, last_name=user.last_name)


@dataclass
class AuthResult:
    """Result of a successful registration or login."""

    user: UserProfile
    token: str


def validate_password(password: str) -> None:
    """Raise ValidationError if the password is shorter than the minimum length."""
    min_length = get_settings().MIN_PASSWORD_LENGTH
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")


class CredentialService:
    """Handles user registration and authentication."""

    def __init__(self, store: UserStore, hasher: PasswordHasher, jwt_service: JWTService) -> None:
        self.store = store
        self.hasher = hasher
        self.jwt_service = jwt_service

    def register(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> AuthResult:
        """Create an account and return its profile with a fresh bearer token."""
        if not EMAIL_PATTERN.match(email.strip()):
            raise ValidationError("Invalid email format")
        validate_password(password)

        if self.store.get_by_email(email):
            raise ConflictError()

        # The unique index on users.email still catches a racing insert.
        user = self.store.add(
            User(
                email=email,
                password_hash=self.hasher.hash(password),
                first_name=(first_name or "").strip() or None,
                last_name=(last_name or "").strip() or None,
            )
        )
        logger.info("Registered user %s", user.id)
        return self._issue(user)

    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate by email and password."""
        user = self.store.get_by_email(email)
        if not user:
            self.hasher.verify_dummy(password)
            logger.info("Login failed: unknown email")
            raise AuthenticationError()

        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed: wrong password for user %s", user.id)
            raise AuthenticationError()

        return self._issue(user)

    def verify_token(self, token: str) -> dict[str, Any]:
        """Decode a bearer token. Raises AuthenticationError if invalid or expired."""
        payload = self.jwt_service.decode_token(token)
        if not payload:
            raise AuthenticationError("Invalid or expired token")
        return payload

    def _issue(self, user: User) -> AuthResult:
        token = self.jwt_service.create_token(user_id=user.id, email=user.email)
        return AuthResult(user=UserProfile.from_user(user), token=token)
