"""
Bearer token issue and validation for tenant-scoped requests.

The organization id travels as the token subject. Uses python-jose.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from opshealth.config import get_settings
from opshealth.utils.clock import utcnow

TOKEN_TYPE = "access"


def create_org_token(org_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue an access token whose subject is the organization id.

    Args:
        org_id: Organization the bearer acts for
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT
    """
    settings = get_settings()
    issued_at = utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expiration_minutes)

    claims = {
        "sub": org_id,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": TOKEN_TYPE,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_org_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        JWTError: If the token is malformed, expired or not an access token
    """
    settings = get_settings()

    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise JWTError(f"Token validation failed: {e}") from e

    if claims.get("type") != TOKEN_TYPE:
        raise JWTError("Invalid token type")
    return claims
