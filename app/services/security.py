"""
Security Service

JWT handling for tokens issued by the identity provider.

The identity provider (user pool) authenticates users and signs tokens;
this service only verifies them and reads their claims. Claims used:

- sub: stable subject id of the user
- email: user's email
- cognito:username (configurable): user's username
- cognito:groups (configurable): group memberships, list or
  comma-separated string

create_access_token() mints tokens with the same layout. It backs local
development and the test-suite; production tokens come from the provider.

Usage:
    from app.services.security import create_access_token, decode_token

    token = create_access_token({"sub": "user-1", "cognito:groups": ["Admin"]})
    claims = decode_token(token)
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ACCESS_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed JWT carrying identity provider claims.

    Args:
        data: Claims to encode (at least "sub")
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "user-1"})
        >>> token.count(".") == 2
        True
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode["exp"] = expire
    if settings.jwt_audience and "aud" not in to_encode:
        to_encode["aud"] = settings.jwt_audience
    if settings.jwt_issuer and "iss" not in to_encode:
        to_encode["iss"] = settings.jwt_issuer

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Signature and expiry are always checked; audience and issuer only
    when configured.

    Args:
        token: The JWT token string

    Returns:
        Decoded claims if valid, None if invalid or expired
    """
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        return None
