"""Signed, short-lived access tokens."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from jose.utils import base64url_decode, base64url_encode

from .exceptions import InvalidSignatureError, TokenExpiredError


class TokenCodec:
    """Issues and verifies HS256 access tokens carrying a user id as `sub`."""

    def __init__(self, secret_key: str, lifetime: timedelta, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.lifetime = lifetime
        self.algorithm = algorithm

    def issue(self, subject_id: str, now: datetime | None = None) -> str:
        """Create a new access token for `subject_id`.

        Args:
            subject_id (str): The id of the user the token is issued to.
            now (datetime | None, optional): Issuance time. Defaults to the current UTC time.

        Returns:
            str: The encoded JWT.
        """
        issued_at = now or datetime.now(timezone.utc)
        expire = issued_at + self.lifetime

        to_encode = {
            "sub": subject_id,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
        }

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    @staticmethod
    def _is_canonical(token: str) -> bool:
        """Check every segment of `token` re-encodes to itself.

        Base64url decoding ignores the unused low bits of the last character,
        so several spellings of a segment decode to the same bytes.
        """
        segments = token.split(".")
        if len(segments) != 3:
            return False

        for segment in segments:
            encoded = segment.encode("ascii", errors="replace")
            try:
                if base64url_encode(base64url_decode(encoded)) != encoded:
                    return False
            except ValueError:
                return False
        return True

    def verify(self, token: str) -> str:
        """Verify `token` and return the subject id it carries.

        Args:
            token (str): The encoded JWT.

        Raises:
            TokenExpiredError: Raised when the token is past its expiry.
            InvalidSignatureError: Raised when the token is malformed, tampered or has no subject.

        Returns:
            str: The subject (user) id.
        """
        if not self._is_canonical(token):
            raise InvalidSignatureError()

        try:
            payload: dict = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise InvalidSignatureError()

        subject_id = payload.get("sub")

        if not subject_id:
            raise InvalidSignatureError()

        return subject_id
