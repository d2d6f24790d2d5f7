"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() function returns configured app
   - Tests build the app once and override the session factory

2. Lifespan Events
   - startup/shutdown logging; store handles are created at import time
     from the cached settings

3. Middleware Stack
   - Rate limiting (slowapi)
   - CORS headers on every response, OPTIONS preflight on any path

4. Exception Handlers
   - ServiceError -> status code via STATUS_BY_KIND
   - Request validation errors -> 400
   - Database and unexpected errors -> generic 500, logged with context
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import get_settings
from app.errors import (
    GENERIC_INTERNAL_MESSAGE,
    CascadeDeleteError,
    ErrorKind,
    ServiceError,
)
from app.middleware import CORSHeadersMiddleware
from app.routers import movies_router, reviews_router
from app.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield: Runs on startup
    Code after yield: Runs on shutdown
    """
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.environment}, debug: {settings.debug}")
    logger.info(f"API prefix: {settings.api_prefix}")

    yield

    logger.info(f"Shutting down {settings.app_name}...")


# =============================================================================
# Error Bodies
# =============================================================================
def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        return "Invalid JSON body"
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## CineNote API

Rate and comment on movies.

### Features
- **Movies**: Catalog managed by admins, browsable by anyone
- **Reviews**: One review per user per movie, kept in step with each
  movie's average rating

### Authentication
Bearer tokens issued by the identity provider. Members of the `Admin`
group manage the catalog and moderate reviews.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------------------
    # Added last so it wraps everything else, including rate limit responses.
    app.add_middleware(CORSHeadersMiddleware, headers=settings.cors_headers)

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(ServiceError)
    async def service_error_handler(
        request: Request,
        exc: ServiceError,
    ) -> JSONResponse:
        """
        Translate a ServiceError into its HTTP status.

        Internal errors are logged and their message replaced by a generic
        one; every other kind carries its message to the client.
        """
        if exc.kind is ErrorKind.INTERNAL:
            if isinstance(exc, CascadeDeleteError):
                logger.error(
                    f"{request.method} {request.url.path}: {exc.message}; "
                    f"succeeded batches={exc.outcome.succeeded}, "
                    f"failed batches={sorted(exc.outcome.failed)}, "
                    f"reviews removed={exc.outcome.processed}"
                )
            else:
                logger.error(f"{request.method} {request.url.path}: {exc.message}")
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": GENERIC_INTERNAL_MESSAGE},
            )

        headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHENTICATED else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Malformed JSON and schema violations are InvalidInput (400)."""
        return JSONResponse(
            status_code=400,
            content={"detail": _validation_message(exc)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error for debugging while hiding details from users.
        """
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": GENERIC_INTERNAL_MESSAGE},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all exception handler."""
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": GENERIC_INTERNAL_MESSAGE},
        )

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    app.include_router(movies_router, prefix=settings.api_prefix)
    app.include_router(reviews_router, prefix=settings.api_prefix)

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        description="Check if the API is running and healthy.",
    )
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": __version__,
            "rate_limiting": {
                "enabled": settings.rate_limit_enabled,
                "default_limit": settings.rate_limit_default,
                "write_limit": settings.rate_limit_write,
            },
            "cascade_delete": {
                "batch_size": settings.review_delete_batch_size,
                "concurrency": settings.review_delete_concurrency,
            },
        }

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
        description="Welcome message and API information.",
    )
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": __version__,
            "api": settings.api_prefix,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn app.main:app

app = create_app()


# =============================================================================
# Development Server
# =============================================================================
# python -m app.main

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
