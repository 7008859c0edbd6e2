"""
FastAPI dependencies for tenant authentication.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from opshealth.auth.jwt import decode_org_token
from opshealth.utils.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_org_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Resolve the calling organization from the bearer token subject.

    Raises:
        HTTPException: 401 if the token is missing, invalid or has no subject
    """
    if not credentials:
        logger.warning("auth_failed", reason="missing_token")
        raise _unauthorized("Missing authentication token")

    try:
        claims = decode_org_token(credentials.credentials)
    except JWTError as e:
        logger.warning("auth_failed", reason="invalid_token", error=str(e))
        raise _unauthorized(f"Invalid authentication token: {e}")

    org_id = claims.get("sub")
    if not org_id:
        logger.warning("auth_failed", reason="missing_org_id")
        raise _unauthorized("Invalid token payload")

    logger.debug("auth_success", org_id=org_id)
    return org_id
