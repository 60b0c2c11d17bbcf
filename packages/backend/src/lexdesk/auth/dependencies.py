"""FastAPI auth dependencies.

Used as Depends() in route handlers to extract and validate the
current user from the `Authorization: Bearer <jwt>` header.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from lexdesk.auth.jwt import TokenError, user_id_from_payload, verify_token


class CurrentIdentity:
    """The authenticated user making the request.

    Every ledger query is scoped by `user_id`, so this is all the
    routes need from the auth layer.
    """

    def __init__(self, user_id: int):
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id})"


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an Authorization header value."""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        return token or None
    return None


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no auth)."""
    token = bearer_token(authorization)
    if not token:
        return None
    return _authenticate_jwt(token)


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not identity:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def _authenticate_jwt(token: str) -> CurrentIdentity:
    """Authenticate via JWT access token."""
    try:
        payload = verify_token(token, token_type="access")
        return CurrentIdentity(user_id=user_id_from_payload(payload))
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
