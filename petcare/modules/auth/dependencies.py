"""Authentication dependencies for the API.

Provides get_current_user_id dependency for protecting routes.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from petcare.core.security import InvalidTokenError, decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> uuid.UUID:
    """
    FastAPI dependency returning the authenticated user's ID.

    The token is issued by the auth provider; the ID is trusted once the
    signature checks out.

    Raises:
        HTTPException: 401 if the token is missing or invalid

    Usage:
        @router.get("/ai/usage")
        async def usage(user_id: uuid.UUID = Depends(get_current_user_id)):
            ...
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please log in.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_access_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.info(f"Rejected access token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
