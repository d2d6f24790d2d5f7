"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

Provided here:
- Stores and the rating engine, built from the session factory
- Caller identity: required, optional, and admin-only principals
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import get_settings
from app.database import SessionFactory, get_session_factory
from app.services.auth import Principal, authenticate, require_admin, require_authenticated
from app.services.ratings import RatingEngine
from app.services.stores import MovieStore, ReviewStore

settings = get_settings()

# =============================================================================
# Stores and Engine
# =============================================================================


def get_movie_store(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> MovieStore:
    return MovieStore(session_factory)


def get_review_store(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> ReviewStore:
    return ReviewStore(session_factory)


def get_rating_engine(
    movies: MovieStore = Depends(get_movie_store),
    reviews: ReviewStore = Depends(get_review_store),
) -> RatingEngine:
    """
    Rating engine wired to the stores and the cascade settings.

    Usage:
        @router.post("/movies/{movie_id}/reviews")
        def upsert(engine: Engine):
            engine.upsert_review(...)
    """
    return RatingEngine(
        movies,
        reviews,
        delete_batch_size=settings.review_delete_batch_size,
        delete_concurrency=settings.review_delete_concurrency,
    )


Movies = Annotated[MovieStore, Depends(get_movie_store)]
Reviews = Annotated[ReviewStore, Depends(get_review_store)]
Engine = Annotated[RatingEngine, Depends(get_rating_engine)]


# =============================================================================
# Authentication (identity provider bearer tokens)
# =============================================================================
# auto_error=False: a missing header yields None so that we can raise our own
# Unauthenticated error (401) or treat the caller as anonymous.

bearer_scheme = HTTPBearer(auto_error=False)


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials else None


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """
    Principal of an authenticated caller.

    Raises:
        ServiceError: UNAUTHENTICATED (401) if the token is missing or invalid
    """
    return require_authenticated(_token(credentials))


def get_optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal | None:
    """
    Principal if the caller sent a usable token, None otherwise.

    Used by read endpoints that work anonymously but compute per-caller
    capability flags when a user is signed in.
    """
    return authenticate(_token(credentials))


def get_admin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """
    Principal of an admin caller.

    Raises:
        ServiceError: UNAUTHENTICATED (401) or FORBIDDEN (403)
    """
    require_admin(principal)
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]
AdminPrincipal = Annotated[Principal, Depends(get_admin_principal)]
