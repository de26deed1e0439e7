import secrets
import hashlib
from datetime import datetime, timezone, timedelta
from jose import jwt, JWTError
from core.config import settings
from core.exceptions import InvalidToken


class TokenService:
    """
    Mints and verifies signed access/refresh tokens.

    Access and refresh tokens are signed with different secrets and carry a
    "type" claim, so neither can be replayed as the other. Nothing here is
    persisted; the session store keeps the refresh token hash.
    """

    @staticmethod
    def create_access_token(user_id: int, expires_delta: timedelta = None) -> str:
        """
        Creates a signed access token.

        Args:
            user_id: Subject of the token
            expires_delta: Lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        now = datetime.now(timezone.utc)

        payload = {
            "sub": str(user_id),
            "type": "access",
            "iat": now,
            "exp": now + expires_delta
        }

        return jwt.encode(payload, settings.JWT_ACCESS_SECRET, algorithm=settings.ALGORITHM)

    @staticmethod
    def create_refresh_token(user_id: int, jti: str = None, expires_delta: timedelta = None):
        """
        Creates a signed refresh token.

        Returns:
            Tuple of (refresh_token_string, jti, expires_at)
        """
        if jti is None:
            jti = secrets.token_urlsafe(32)

        if expires_delta is None:
            expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

        now = datetime.now(timezone.utc)
        expires_at = now + expires_delta

        payload = {
            "sub": str(user_id),
            "jti": jti,
            "type": "refresh",
            "iat": now,
            "exp": expires_at
        }

        refresh_token = jwt.encode(payload, settings.JWT_REFRESH_SECRET, algorithm=settings.ALGORITHM)

        return refresh_token, jti, expires_at

    @staticmethod
    def _decode(token: str, secret: str, expected_type: str) -> dict:
        try:
            payload = jwt.decode(token, secret, algorithms=[settings.ALGORITHM])
        except JWTError as e:
            raise InvalidToken(str(e)) from e

        if payload.get("type") != expected_type:
            raise InvalidToken("Invalid token type")

        sub = payload.get("sub")
        if sub is None or not str(sub).isdigit():
            raise InvalidToken("Invalid token subject")

        payload["user_id"] = int(sub)
        return payload

    @staticmethod
    def verify_access_token(token: str) -> dict:
        """
        Returns the claims of a valid access token (plus an int "user_id").

        Raises:
            InvalidToken: bad signature, expired, wrong type or bad subject
        """
        return TokenService._decode(token, settings.JWT_ACCESS_SECRET, "access")

    @staticmethod
    def verify_refresh_token(token: str) -> dict:
        claims = TokenService._decode(token, settings.JWT_REFRESH_SECRET, "refresh")
        if not claims.get("jti"):
            raise InvalidToken("Missing token id")
        return claims

    @staticmethod
    def hash_value(value: str) -> str:
        """Deterministic SHA-256 hex digest, used to look up refresh tokens."""
        return hashlib.sha256(value.encode()).hexdigest()
