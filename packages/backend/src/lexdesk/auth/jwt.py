"""JWT token creation and verification.

- Access token: short-lived (60min), used for API calls and sockets
- Refresh token: long-lived (30 days), used to get new access tokens

PyJWT requires `sub` to be a string, so the integer user id is encoded
as text and parsed back by user_id_from_payload().
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from lexdesk.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    user_id: int,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": str(user_id),
        "type": "access",
        "exp": expires,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_refresh_token(
    user_id: int,
    expires_days: Optional[int] = None,
) -> str:
    """Create a JWT refresh token."""
    expires = datetime.now(timezone.utc) + timedelta(
        days=expires_days or settings.refresh_token_expire_days
    )
    payload = {
        "sub": str(user_id),
        "type": "refresh",
        "exp": expires,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: Optional[str] = None) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success. When `token_type` is given the
    token's `type` claim must match it.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if token_type and payload.get("type") != token_type:
        raise TokenError(f"Expected a {token_type} token")
    return payload


def user_id_from_payload(payload: dict) -> int:
    """Extract the integer user id from a decoded token."""
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise TokenError("Token has no valid subject")
