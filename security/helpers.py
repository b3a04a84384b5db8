"""Contains all security related helper functions and request dependencies
"""
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Header, Request, Security
from fastapi.security import APIKeyHeader

from passlib.context import CryptContext

from beanie import PydanticObjectId
from bson.errors import InvalidId

from typing import Annotated

from config.settings import get_settings

from models.users import User, Session

from .exceptions import (
    InvalidCredentialsError,
    InvalidSignatureError,
    SessionExpiredError,
    SessionNotFoundError,
)
from .sessions import SessionStore
from .tokens import TokenCodec

ACCESS_TOKEN_HEADER = "x-access-token"
REFRESH_TOKEN_HEADER = "x-refresh-token"
USER_ID_HEADER = "_id"


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

access_token_scheme = APIKeyHeader(
    name=ACCESS_TOKEN_HEADER,
    auto_error=False,
    description="Short-lived access token returned at signup, login and refresh.",
)


@dataclass
class SessionContext:
    """The user and session a valid refresh token belongs to."""

    user: User
    session: Session
    refresh_token: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies that `plain_password` and `hashed_password` are equal.

    Args:
        plain_password (str): The plain text password to verify.
        hashed_password (str): The hashed password to compare against.

    Returns:
        bool: True if the passwords match, False otherwise.
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generates a hash for the given password.

    Args:
        password (str): The plain text password to hash.

    Returns:
        str: The hashed password.
    """
    return pwd_context.hash(password)


@lru_cache
def get_token_codec() -> TokenCodec:
    """Get the access token codec built from the process settings."""
    settings = get_settings()
    return TokenCodec(settings.secret_key, settings.access_token_lifetime)


@lru_cache
def get_session_store() -> SessionStore:
    """Get the session store built from the process settings."""
    settings = get_settings()
    return SessionStore(settings.refresh_token_lifetime, settings.max_sessions_per_user)


async def get_user(email: str) -> User | None:
    """
    Fetches a user from the database by their email.

    Args:
        email (str): The email of the user to fetch.

    Returns:
        User | None: The user object if found, None otherwise.
    """
    return await User.find_one(User.email == email)


async def get_user_by_id(user_id: str) -> User | None:
    """
    Fetches a user from the database by their ID.

    Args:
        user_id (str): The ID of the user to fetch.

    Returns:
        User | None: The user object if found, None otherwise.
    """
    try:
        return await User.get(PydanticObjectId(user_id))
    except (InvalidId, TypeError):
        return None


async def authenticate_user(email: str, password: str) -> User:
    """Authenticates a user by their email and password.

    Raises:
        InvalidCredentialsError: Raised when no user matches the email or the password is wrong.

    Returns:
        User: The authenticated user.
    """
    user = await get_user(email)

    if not user or not verify_password(password, user.password):
        raise InvalidCredentialsError()
    return user


async def get_current_user_id(
    request: Request,
    token: Annotated[str | None, Security(access_token_scheme)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
) -> str:
    """Validate the access token of the request and return its user id.

    Failures are never retried here, the client refreshes and retries.

    Raises:
        InvalidSignatureError: Raised when the token is missing, malformed or tampered.
        TokenExpiredError: Raised when the token has expired.

    Returns:
        str: The id of the authenticated user.
    """
    if not token:
        raise InvalidSignatureError("Missing access token")

    user_id = codec.verify(token)
    request.state.user_id = user_id
    return user_id


async def get_current_user(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> User:
    """Get the user the access token of the request was issued to.

    Raises:
        SessionNotFoundError: Raised when the user no longer exists.
    """
    user = await get_user_by_id(user_id)

    if user is None:
        raise SessionNotFoundError("User no longer exists")

    request.state.user = user
    return user


async def verify_session(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
    refresh_token: Annotated[str | None, Header(alias=REFRESH_TOKEN_HEADER)] = None,
    user_id: Annotated[str | None, Header(alias=USER_ID_HEADER, convert_underscores=False)] = None,
) -> SessionContext:
    """Validate the refresh token and user id headers against the session store.

    Raises:
        SessionNotFoundError: Raised when no user with that id holds the refresh token.
        SessionExpiredError: Raised when the matching session has expired.

    Returns:
        SessionContext: The user and the matched session.
    """
    if not refresh_token or not user_id:
        raise SessionNotFoundError("Missing refresh token or user id")

    user = await store.find_by_id_and_token(user_id, refresh_token)

    if user is None:
        raise SessionNotFoundError()

    session = store.find_session(user, refresh_token)

    if session is None:
        raise SessionExpiredError()

    request.state.user_id = str(user.id)
    request.state.user = user
    request.state.session = session

    return SessionContext(user=user, session=session, refresh_token=refresh_token)
