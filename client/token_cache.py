"""Durable storage for the tokens of the logged in user."""

import os
import json
import tempfile

from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from utils.logger import get_logger

logger = get_logger("client.token_cache")

USER_ID_KEY = "user-id"
ACCESS_TOKEN_KEY = "x-access-token"
REFRESH_TOKEN_KEY = "x-refresh-token"

SESSION_KEYS = (USER_ID_KEY, ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY)

DEFAULT_CACHE_PATH = Path.home() / ".diagram-editor" / "session.json"


class TokenCache:
    """Key-value store persisted as a JSON file.

    Every write replaces the whole file, so readers never see a partially
    written session.
    """

    def __init__(self, path: Path | str = DEFAULT_CACHE_PATH):
        self.path = Path(path)
        self.lock = Lock()

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as file:
                data = json.load(file)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable token cache at {self.path}")
            return {}

        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file:
                json.dump(data, file)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        with self.lock:
            return self._read().get(key)

    def get_user_id(self) -> Optional[str]:
        return self.get(USER_ID_KEY)

    def get_access_token(self) -> Optional[str]:
        return self.get(ACCESS_TOKEN_KEY)

    def get_refresh_token(self) -> Optional[str]:
        return self.get(REFRESH_TOKEN_KEY)

    def set_session(
        self, user_id: str, access_token: Optional[str], refresh_token: Optional[str]
    ) -> bool:
        """Store a complete session.

        Both tokens must be present, a partial session is logged and not stored.

        Returns:
            bool: True if the session was stored.
        """
        if not access_token or not refresh_token:
            logger.error("Refusing to store a session without both an access and a refresh token")
            return False

        with self.lock:
            data = self._read()
            data.update(
                {
                    USER_ID_KEY: user_id,
                    ACCESS_TOKEN_KEY: access_token,
                    REFRESH_TOKEN_KEY: refresh_token,
                }
            )
            self._write(data)
        return True

    def set_access_token(self, access_token: str) -> None:
        with self.lock:
            data = self._read()
            data[ACCESS_TOKEN_KEY] = access_token
            self._write(data)

    def remove_session(self) -> None:
        """Remove the user id and both tokens in a single write."""
        with self.lock:
            data = self._read()
            for key in SESSION_KEYS:
                data.pop(key, None)
            self._write(data)
