"""
JWT token creation and validation.
Uses python-jose for JWT handling.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from splitstats.config import get_settings
from splitstats.utils.clock import utc_now


def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a JWT access token for an external identity.

    Args:
        subject: External identity id, stored as the ``sub`` claim
        expires_delta: Optional custom expiration time
        extra_claims: Additional claims to embed

    Returns:
        Encoded JWT token
    """
    settings = get_settings()
    now = utc_now()
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expiration_minutes))

    to_encode: Dict[str, Any] = dict(extra_claims or {})
    to_encode.update(
        {
            "sub": subject,
            "exp": expire,
            "iat": now,
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload

    Raises:
        JWTError: If token is invalid or expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise JWTError(f"Token validation failed: {str(e)}") from e

    if payload.get("type") != "access":
        raise JWTError("Token validation failed: invalid token type")

    return payload
