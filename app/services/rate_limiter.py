"""
Rate Limiting Service

slowapi limiter shared by all routers.

Limits are counted per caller: the token subject when a bearer token
decodes, otherwise the client IP (proxy headers first). Reads use
settings.rate_limit_default and writes settings.rate_limit_write.

Storage defaults to in-process memory; set RATE_LIMIT_STORAGE_URI to a
shared backend when running more than one instance.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.config import get_settings
from app.services.security import decode_token

logger = logging.getLogger(__name__)
settings = get_settings()


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First entry is the originating client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def get_rate_limit_key(request: Request) -> str:
    """
    Identify the caller for rate limiting.

    Authenticated callers share one limit across addresses; anonymous callers
    are keyed by address. An undecodable token counts as anonymous.
    """
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        claims = decode_token(token.strip())
        if claims and claims.get("sub"):
            return f"sub:{claims['sub']}"
    return f"ip:{get_client_ip(request)}"


def create_limiter() -> Limiter:
    limiter = Limiter(
        key_func=get_rate_limit_key,
        default_limits=[settings.rate_limit_default],
        storage_uri=settings.rate_limit_storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"reads: {settings.rate_limit_default}, writes: {settings.rate_limit_write}, "
        f"storage: {settings.rate_limit_storage_uri}"
    )
    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with the same {"detail": ...} body as every other error."""
    retry_after = exc.limit.limit.get_expiry()

    logger.warning(
        f"Rate limit {exc.detail} exceeded by {get_rate_limit_key(request)} "
        f"on {request.method} {request.url.path}"
    )

    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
        headers={"Retry-After": str(retry_after)},
    )
