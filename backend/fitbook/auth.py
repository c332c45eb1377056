# backend/fitbook/auth.py
"""
Bearer token handling for FitBook.

Tokens are issued by the external auth collaborator; this module only
verifies them and extracts the acting user's id from the ``sub`` claim.
``create_access_token`` exists for tooling and tests.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from jwt import PyJWTError

from .core.config import settings

logger = logging.getLogger(__name__)

# auto_error=False so a missing header gets the same problem envelope as a bad token
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry; raises PyJWTError subclasses on failure."""
    claims: Dict[str, Any] = jwt.decode(
        token,
        settings.secret_key.get_secret_value(),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return claims


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign ``data`` as an access token.

    Args:
        data: Claims to encode; ``sub`` must be the user id
        expires_delta: Lifetime, defaulting to ``ACCESS_TOKEN_EXPIRE_MINUTES``
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(
        claims, settings.secret_key.get_secret_value(), algorithm=settings.algorithm
    )


def user_id_from_token(token: Optional[str]) -> str:
    """
    Return the ``sub`` claim of a valid token.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_access_token(token)
    except PyJWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise _unauthorized("Could not validate credentials")

    user_id = claims.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.warning("Bearer token without a subject")
        raise _unauthorized("Could not validate credentials")
    return user_id


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Dependency returning the authenticated user's id."""
    return user_id_from_token(credentials.credentials if credentials else None)
