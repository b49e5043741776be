"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. Tokens are
issued elsewhere (the staff login flow); this backend only needs to check
them. The token carries the user id (`sub`) and the staff role
(`admin`, `counter` or `delivery`).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from stallpos.config import settings

ROLES = ("admin", "counter", "delivery")


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    user_id: str,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    if role not in ROLES:
        raise TokenError(f"Unknown role: {role}")
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "exp": expires,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
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
    if "sub" not in payload:
        raise TokenError("Invalid token: missing subject")
    return payload
