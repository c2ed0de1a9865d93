"""Security utilities for authentication.

Users sign in with an external identity provider; the API only verifies the
identity token it issues. Passwords and display names never reach us.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from core.config import settings


def create_identity_token(
    user_id: str,
    email: str | None = None,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Issue an identity token with the same claims the sign-in provider sets.

    Used by tests and for local development without the provider.
    """
    now = datetime.now(timezone.utc)
    delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode: dict[str, Any] = {
        "sub": user_id,
        "exp": now + delta,
        "iat": now,
        "iss": settings.AUTH_TOKEN_ISSUER,
        "aud": settings.AUTH_TOKEN_AUDIENCE,
        "jti": secrets.token_urlsafe(16),
    }
    if email:
        to_encode["email"] = email
    if extra_claims:
        to_encode.update(extra_claims)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_identity_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate an identity token.

    Checks signature, expiry, issuer and audience.

    Returns:
        The decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.AUTH_TOKEN_ISSUER,
            audience=settings.AUTH_TOKEN_AUDIENCE,
        )
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload
