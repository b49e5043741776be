"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current staff identity from the request. Who may call
what is a role check — the realtime core never looks at any of this.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from stallpos.auth.jwt import TokenError, verify_token


class CurrentIdentity:
    """The authenticated staff member making the request."""

    def __init__(self, user_id: str, role: str = "unknown"):
        self.user_id = user_id
        self.role = role

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no auth)."""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]
        return _authenticate_jwt(token)
    return None


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


def require_role(*roles: str):
    """Dependency factory — 403 unless the caller has one of `roles`.

    Usage: Depends(require_role("admin", "delivery"))
    """

    async def _check(
        identity: CurrentIdentity = Depends(get_current_user),
    ) -> CurrentIdentity:
        if not identity.has_role(*roles):
            raise HTTPException(
                status_code=403,
                detail=f"Requires role: {', '.join(roles)}",
            )
        return identity

    return _check


def _authenticate_jwt(token: str) -> CurrentIdentity:
    """Authenticate via JWT token."""
    try:
        payload = verify_token(token)
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentIdentity(user_id=payload["sub"], role=payload.get("role", "unknown"))
