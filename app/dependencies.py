"""Service providers and authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import AuthenticationError
from app.services.auth import CredentialService
from app.services.jwt import get_jwt_service
from app.services.mailer import EmailSender, get_email_sender
from app.services.password_reset import PasswordResetService
from app.services.passwords import get_password_hasher
from app.services.user_store import UserStore


@dataclass
class CurrentUser:
    """Authenticated user context taken from the bearer token."""

    user_id: int
    email: str


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_credential_service(store: UserStore = Depends(get_user_store)) -> CredentialService:
    return CredentialService(store, get_password_hasher(), get_jwt_service())


def get_password_reset_service(
    store: UserStore = Depends(get_user_store),
    email_sender: EmailSender = Depends(get_email_sender),
) -> PasswordResetService:
    return PasswordResetService(store, get_password_hasher(), email_sender)


def get_current_user(
    request: Request,
    service: CredentialService = Depends(get_credential_service),
) -> CurrentUser:
    """Extract and validate the user from the Authorization header. Raises 401 if invalid."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Not authenticated")

    payload = service.verify_token(auth_header[7:])
    return CurrentUser(user_id=int(payload["sub"]), email=payload["email"])
