"""Authentication and session errors.

Every error carries the HTTP status it maps to so the API layer can render it
without knowing the individual types.
"""

from fastapi import status


class AuthError(Exception):
    """Base class for all authentication failures."""

    code: str = "auth_error"
    status_code: int = status.HTTP_401_UNAUTHORIZED
    message: str = "Could not validate credentials"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    """Raised when an email/password pair does not match a user."""

    code = "invalid_credentials"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Incorrect email or password"


class InvalidSignatureError(AuthError):
    """Raised when an access token is missing, malformed or tampered with."""

    code = "invalid_signature"
    message = "Invalid access token"


class TokenExpiredError(AuthError):
    """Raised when an access token is past its expiry."""

    code = "token_expired"
    message = "Token has expired"


class SessionNotFoundError(AuthError):
    """Raised when no user owns the presented refresh token."""

    code = "session_not_found"
    message = "Session not found"


class SessionExpiredError(AuthError):
    """Raised when the presented refresh token's session has expired."""

    code = "session_expired"
    message = "Session has expired"
