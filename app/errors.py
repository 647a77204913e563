"""Error kinds raised by the auth services and mapped to HTTP responses in main.py."""


class AuthError(Exception):
    """Base error carrying a status code and a message that is safe to show clients."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    default_message = "Invalid input"


class ConflictError(AuthError):
    status_code = 400
    default_message = "Email already registered"


class AuthenticationError(AuthError):
    """Bad credentials. Same message whether the email or the password was wrong."""

    status_code = 401
    default_message = "Invalid email or password"


class NotFoundError(AuthError):
    status_code = 404
    default_message = "User not found"


class InvalidTokenError(AuthError):
    """Reset token never issued, already used, superseded or expired."""

    status_code = 400
    default_message = "Invalid or expired reset token"


class UnexpectedError(AuthError):
    status_code = 500
    default_message = "Something went wrong"
