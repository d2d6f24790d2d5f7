"""
Pydantic Schemas Package

Request and response schemas for the CineNote API. All schemas use
camelCase JSON keys (see app.schemas.base.CamelModel).

Usage:
    from app.schemas import MovieCreate, MovieResponse
"""

from app.schemas.base import CamelModel, MessageResponse
from app.schemas.movie import (
    MovieCreate,
    MovieDeleteResponse,
    MovieRatingStats,
    MovieResponse,
    MovieSummary,
)
from app.schemas.review import (
    ModerationReviewResponse,
    ReviewDeleteResponse,
    ReviewResponse,
    ReviewUpsert,
    ReviewUpsertResponse,
)

__all__ = [
    "CamelModel",
    "MessageResponse",
    # Movie schemas
    "MovieCreate",
    "MovieSummary",
    "MovieResponse",
    "MovieDeleteResponse",
    "MovieRatingStats",
    # Review schemas
    "ReviewUpsert",
    "ReviewResponse",
    "ReviewUpsertResponse",
    "ReviewDeleteResponse",
    "ModerationReviewResponse",
]
