"""
HTTP Middleware

CORSHeadersMiddleware gives every response the same permissive
cross-origin headers and answers any OPTIONS request (preflight) with an
empty 200, whatever the path.

Errors that no exception handler claimed would otherwise reach
Starlette's ServerErrorMiddleware, which sits outside this middleware and
would answer without the cross-origin headers. They are turned into the
generic 500 here instead.
"""

import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from app.errors import GENERIC_INTERNAL_MESSAGE

logger = logging.getLogger(__name__)


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Add fixed Access-Control-* headers and short-circuit preflights."""

    def __init__(self, app, headers: dict[str, str]) -> None:
        super().__init__(app)
        self.headers = headers

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=self.headers)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled error on {request.method} {request.url.path}: {exc}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={"detail": GENERIC_INTERNAL_MESSAGE},
                headers=self.headers,
            )

        response.headers.update(self.headers)
        return response
