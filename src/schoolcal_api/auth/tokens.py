"""Session token management.

A session token is an HMAC-signed JWT carried in an httpOnly cookie. Its
subject is the internal user id; the email is included for convenience
only and never trusted for identity.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from schoolcal_api.config import jwt_settings

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Base exception for token operations."""

    pass


class TokenExpiredError(TokenError):
    """Token has expired."""

    pass


class TokenInvalidError(TokenError):
    """Token is invalid."""

    pass


@dataclass
class SessionTokenPayload:
    """Payload for session tokens."""

    sub: str  # User ID
    email: str | None
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SessionTokenPayload":
        """Create SessionTokenPayload from decoded JWT payload."""
        for claim in ("sub", "exp"):
            if claim not in payload:
                raise TokenInvalidError(f"Token missing required '{claim}' claim")
        if not isinstance(payload["sub"], str) or not payload["sub"]:
            raise TokenInvalidError("Token subject must be a non-empty string")

        return cls(
            sub=payload["sub"],
            email=payload.get("email"),
            exp=payload["exp"],
            iat=payload.get("iat", 0),
        )


class SessionTokenManager:
    """Mints and validates session tokens with a shared secret."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expiration_minutes: int = 7 * 24 * 60,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=expiration_minutes)

    def create_token(
        self,
        user_id: str,
        email: str | None = None,
        now: datetime | None = None,
    ) -> str:
        """Create a signed session token for a user.

        Args:
            user_id: Internal user ID
            email: User email, informational only
            now: Issue time (defaults to the current time)

        Returns:
            Signed JWT string
        """
        now = now or datetime.now(timezone.utc)
        exp = now + self.ttl

        payload = {
            "sub": user_id,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> SessionTokenPayload:
        """Validate a session token and return its payload.

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If the signature or claims are invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": True, "verify_aud": False},
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTClaimsError as e:
            raise TokenInvalidError(f"Invalid token claims: {e}") from e
        except JWTError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from e

        return SessionTokenPayload.from_dict(payload)


# Global token manager instance (created lazily)
_token_manager: SessionTokenManager | None = None


def get_token_manager() -> SessionTokenManager:
    """Get the global token manager instance."""
    global _token_manager
    if _token_manager is None:
        if jwt_settings.secret_key == "change-me-in-production":
            logger.warning("JWT_SECRET_KEY is not set, using the development secret")
        _token_manager = SessionTokenManager(
            secret_key=jwt_settings.secret_key,
            algorithm=jwt_settings.algorithm,
            expiration_minutes=jwt_settings.expiration_minutes,
        )
    return _token_manager


def create_session_token(user_id: str, email: str | None = None) -> str:
    """Convenience function to create a session token."""
    return get_token_manager().create_token(user_id, email)


def decode_session_token(token: str) -> SessionTokenPayload:
    """Convenience function to validate a session token."""
    return get_token_manager().decode_token(token)
