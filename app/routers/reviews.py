"""
Reviews Router

Endpoints for movie reviews.

Endpoints:
- GET /movies/{movie_id}/reviews - List reviews for a movie (anonymous)
- POST /movies/{movie_id}/reviews - Create or edit the caller's review
- DELETE /movies/{movie_id}/reviews/{reviewer_id} - Delete a review
- GET /reviews - List all reviews for moderation (admin)

Business Rules:
- One review per user per movie; posting again edits the same review
  (201 on create, 200 on edit)
- Only the review author can edit their review
- The review author or an admin can delete a review
"""

import logging

from fastapi import APIRouter, Request, Response, status

from app.config import get_settings
from app.dependencies import CurrentPrincipal, Engine, Movies, OptionalPrincipal, Reviews
from app.schemas import (
    ModerationReviewResponse,
    ReviewDeleteResponse,
    ReviewResponse,
    ReviewUpsert,
    ReviewUpsertResponse,
)
from app.services import catalog
from app.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    tags=["Reviews"],
    responses={
        404: {"description": "Review or movie not found"},
    },
)


# =============================================================================
# Movie Review Endpoints
# =============================================================================


@router.get(
    "/movies/{movie_id}/reviews",
    response_model=list[ReviewResponse],
    summary="List reviews for a movie",
    description=(
        "Reviews of a movie, newest first. canEdit/canDelete reflect the "
        "caller when a bearer token is sent."
    ),
)
@limiter.limit(settings.rate_limit_default)
def list_movie_reviews(
    request: Request,
    movie_id: str,
    reviews: Reviews,
    principal: OptionalPrincipal,
) -> list[ReviewResponse]:
    return [
        ReviewResponse(
            review_id=view.review.review_id,
            author_id=view.review.author_id,
            display_name=view.review.display_name,
            rating=view.review.rating,
            comment=view.review.comment,
            created_at=view.review.created_at,
            updated_at=view.review.updated_at,
            can_edit=view.capabilities.can_edit,
            can_delete=view.capabilities.can_delete,
        )
        for view in catalog.list_movie_reviews(reviews, movie_id, principal)
    ]


@router.post(
    "/movies/{movie_id}/reviews",
    response_model=ReviewUpsertResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create or edit your review",
    description=(
        "Create the caller's review of a movie (201) or replace it if it "
        "already exists (200). Returns the movie's new rating aggregate."
    ),
)
@limiter.limit(settings.rate_limit_write)
def upsert_review(
    request: Request,
    response: Response,
    movie_id: str,
    review_data: ReviewUpsert,
    engine: Engine,
    principal: CurrentPrincipal,
) -> ReviewUpsertResponse:
    """
    Upsert the caller's review.

    Raises:
        ServiceError: 400 invalid rating/comment, 401, 404 movie missing
    """
    result = engine.upsert_review(
        movie_id,
        rating=review_data.rating,
        comment=review_data.comment,
        principal=principal,
    )

    if not result.created:
        response.status_code = status.HTTP_200_OK

    return ReviewUpsertResponse(
        movie_id=result.movie_id,
        review_id=result.review_id,
        rating=result.rating,
        comment=result.comment,
        average_rating=result.average_rating,
        rating_count=result.rating_count,
    )


@router.delete(
    "/movies/{movie_id}/reviews/{reviewer_id}",
    response_model=ReviewDeleteResponse,
    summary="Delete a review",
    description="Delete a review. Only the review author or an admin can delete.",
)
@limiter.limit(settings.rate_limit_write)
def delete_review(
    request: Request,
    movie_id: str,
    reviewer_id: str,
    engine: Engine,
    principal: CurrentPrincipal,
) -> ReviewDeleteResponse:
    """
    Delete a review and return the movie's new aggregate.

    Raises:
        ServiceError: 401, 403 not author/admin, 404 review or movie missing
    """
    result = engine.delete_review(movie_id, reviewer_id, principal)
    return ReviewDeleteResponse(
        message="Review deleted",
        average_rating=result.average_rating,
        rating_count=result.rating_count,
    )


# =============================================================================
# Moderation
# =============================================================================


@router.get(
    "/reviews",
    response_model=list[ModerationReviewResponse],
    summary="List all reviews",
    description="Every review, newest first, with its movie's title. Admin only.",
)
@limiter.limit(settings.rate_limit_default)
def list_all_reviews(
    request: Request,
    movies: Movies,
    reviews: Reviews,
    principal: CurrentPrincipal,
) -> list[ModerationReviewResponse]:
    return [
        ModerationReviewResponse(
            movie_id=view.review.movie_id,
            movie_title=view.movie_title,
            review_id=view.review.review_id,
            author_id=view.review.author_id,
            display_name=view.review.display_name,
            rating=view.review.rating,
            comment=view.review.comment,
            created_at=view.review.created_at,
            updated_at=view.review.updated_at,
        )
        for view in catalog.list_all_reviews(movies, reviews, principal)
    ]
