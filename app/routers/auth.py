"""Authentication API endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from app.dependencies import (
    CurrentUser,
    get_credential_service,
    get_current_user,
    get_password_reset_service,
    get_user_store,
)
from app.errors import AuthenticationError
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from app.services.auth import AuthResult, CredentialService, UserProfile
from app.services.password_reset import PasswordResetService
from app.services.user_store import UserStore

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _auth_response(message: str, result: AuthResult) -> AuthResponse:
    return AuthResponse(message=message, user=UserResponse(**asdict(result.user)), token=result.token)


@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(body: RegisterRequest, service: CredentialService = Depends(get_credential_service)) -> AuthResponse:
    """Register a new user account."""
    result = service.register(body.email, body.password, body.first_name, body.last_name)
    return _auth_response("Registration successful", result)


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, service: CredentialService = Depends(get_credential_service)) -> AuthResponse:
    """Authenticate and receive a bearer token."""
    result = service.login(body.email, body.password)
    return _auth_response("Login successful", result)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    """Email a password reset link to the account owner."""
    return MessageResponse(message=service.request_reset(body.email))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    """Set a new password using a token from the reset email."""
    return MessageResponse(message=service.complete_reset(body.token, body.password))


@router.get("/me", response_model=MeResponse)
def me(user: CurrentUser = Depends(get_current_user), store: UserStore = Depends(get_user_store)) -> MeResponse:
    """Return the profile of the bearer token's owner."""
    record = store.get_by_id(user.user_id)
    if not record:
        raise AuthenticationError("Not authenticated")
    return MeResponse(user=UserResponse(**asdict(UserProfile.from_user(record))))
