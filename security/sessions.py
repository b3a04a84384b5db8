"""Refresh-token sessions persisted on the user record.

Sessions are read and written as part of the user document, so concurrent
logins for the same user are not transactional. Sessions are keyed by their
random token value, which keeps a lost or duplicated append harmless.
"""

import time
import secrets

import logfire

from datetime import timedelta

from bson import ObjectId
from bson.errors import InvalidId

from models.users import User, Session

REFRESH_TOKEN_BYTES = 64


class SessionStore:
    """Creates, finds and revokes the refresh-token sessions of users."""

    def __init__(self, lifetime: timedelta, max_sessions: int = 10):
        self.lifetime = lifetime
        self.max_sessions = max_sessions

    @staticmethod
    def generate_refresh_token() -> str:
        """Generate a random refresh token (64 bytes, hex encoded)."""
        return secrets.token_hex(REFRESH_TOKEN_BYTES)

    @staticmethod
    def has_expired(expires_at: float, now: float | None = None) -> bool:
        """Check whether a session expiry (seconds since epoch) has passed.

        Args:
            expires_at (float): Unix timestamp the session expires at.
            now (float | None, optional): Current unix timestamp. Defaults to `time.time()`.

        Returns:
            bool: True if the session has expired, False otherwise.
        """
        if now is None:
            now = time.time()
        return expires_at <= now

    def prune_expired(self, user: User, now: float | None = None) -> int:
        """Drop the expired sessions of `user` in place. Does not save.

        Returns:
            int: The number of sessions removed.
        """
        live = [s for s in user.sessions if not self.has_expired(s.expires_at, now)]
        removed = len(user.sessions) - len(live)
        user.sessions = live
        return removed

    async def create_session(self, user: User) -> str:
        """Create a new session for `user` and persist it.

        Expired sessions are pruned first and the oldest sessions are dropped
        once the user holds more than `max_sessions`.

        Args:
            user (User): The user logging in.

        Returns:
            str: The refresh token of the new session.
        """
        now = time.time()
        refresh_token = self.generate_refresh_token()

        pruned = self.prune_expired(user, now)

        user.sessions.append(
            Session(token=refresh_token, expires_at=now + self.lifetime.total_seconds())
        )

        # Sessions are appended in creation order so the oldest come first
        overflow = len(user.sessions) - self.max_sessions
        if overflow > 0:
            user.sessions = user.sessions[overflow:]

        await user.save()

        logfire.info(
            f"Created session for user {user.id} (pruned {pruned} expired, {len(user.sessions)} active)"
        )

        return refresh_token

    @staticmethod
    async def find_by_id_and_token(user_id: str, token: str) -> User | None:
        """Find the user with id `user_id` whose sessions contain `token`.

        Args:
            user_id (str): The id of the user.
            token (str): The refresh token.

        Returns:
            User | None: The user if found, None otherwise.
        """
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None

        return await User.find_one({"_id": object_id, "sessions.token": token})

    def find_session(self, user: User, token: str, now: float | None = None) -> Session | None:
        """Find the unexpired session of `user` matching `token`.

        Returns:
            Session | None: The session, or None if no unexpired session matches.
        """
        for session in user.sessions:
            if session.token == token and not self.has_expired(session.expires_at, now):
                return session
        return None

    @staticmethod
    async def revoke_session(user: User, token: str) -> bool:
        """Remove the session matching `token` from `user` and persist the user.

        Returns:
            bool: True if a session was removed.
        """
        remaining = [s for s in user.sessions if s.token != token]
        if len(remaining) == len(user.sessions):
            return False

        user.sessions = remaining
        await user.save()

        logfire.info(f"Revoked session for user {user.id}")
        return True
