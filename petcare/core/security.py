"""
Access token verification.

Users authenticate with the external auth provider, which issues HS256
JWTs. We only verify the signature and read the subject; credentials and
sessions are never handled here.

CRITICAL SECURITY REQUIREMENTS:
1. NEVER log tokens
2. ALWAYS verify the signature and expiry before trusting a claim
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError

from petcare.core.config import settings


class InvalidTokenError(Exception):
    """Access token is missing, malformed, expired, or has no usable subject."""
    pass


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify an access token and return the user ID from its `sub` claim.

    Args:
        token: Raw bearer token

    Returns:
        User UUID

    Raises:
        InvalidTokenError: If verification fails
    """
    if not token:
        raise InvalidTokenError("Empty token")

    options = {"verify_aud": settings.AUTH_JWT_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            options=options,
        )
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    subject = payload.get("sub")
    try:
        return uuid.UUID(str(subject))
    except (TypeError, ValueError) as e:
        raise InvalidTokenError("Token subject is not a user ID") from e


def create_access_token(
    user_id: uuid.UUID,
    expires_in: timedelta = timedelta(hours=1),
    audience: Optional[str] = None,
) -> str:
    """
    Issue a token in the auth provider's format.

    Only used by tests and local tooling; production tokens come from the
    auth provider.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    audience = audience or settings.AUTH_JWT_AUDIENCE
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)
