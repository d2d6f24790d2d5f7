"""
Movies Router

Catalog endpoints.

Endpoints:
- GET /movies - List movies, newest first (anonymous)
- GET /movies/{movie_id} - Get a movie with its rating aggregate (anonymous)
- POST /movies - Create a movie (admin)
- DELETE /movies/{movie_id} - Delete a movie and all its reviews (admin)
- GET /movies/{movie_id}/rating - Rating statistics (anonymous)
- POST /movies/{movie_id}/rating/recalculate - Rebuild the aggregate (admin)
"""

import logging

from fastapi import APIRouter, Request, status

from app.config import get_settings
from app.dependencies import AdminPrincipal, CurrentPrincipal, Engine, Movies, Reviews
from app.schemas import (
    MovieCreate,
    MovieDeleteResponse,
    MovieRatingStats,
    MovieResponse,
    MovieSummary,
)
from app.services import catalog
from app.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/movies",
    tags=["Movies"],
    responses={
        404: {"description": "Movie not found"},
    },
)


# =============================================================================
# Catalog Endpoints
# =============================================================================


@router.get(
    "",
    response_model=list[MovieSummary],
    summary="List movies",
    description="All movies ordered by creation time, newest first.",
)
@limiter.limit(settings.rate_limit_default)
def list_movies(
    request: Request,
    movies: Movies,
) -> list[MovieSummary]:
    return [MovieSummary.model_validate(movie) for movie in catalog.list_movies(movies)]


@router.get(
    "/{movie_id}",
    response_model=MovieResponse,
    summary="Get a movie by ID",
    description="Retrieve a movie including its rating aggregate.",
)
@limiter.limit(settings.rate_limit_default)
def get_movie(
    request: Request,
    movie_id: str,
    movies: Movies,
) -> MovieResponse:
    """
    Get a single movie.

    Raises:
        ServiceError: 404 if the movie does not exist
    """
    return MovieResponse.model_validate(catalog.get_movie(movies, movie_id))


@router.post(
    "",
    response_model=MovieResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a movie",
    description="Add a movie to the catalog. Admin only.",
)
@limiter.limit(settings.rate_limit_write)
def create_movie(
    request: Request,
    movie_data: MovieCreate,
    movies: Movies,
    principal: CurrentPrincipal,
) -> MovieResponse:
    """
    Create a movie.

    Raises:
        ServiceError: 400 invalid fields, 401/403 auth, 409 duplicate id
    """
    movie = catalog.create_movie(
        movies,
        principal,
        movie_id=movie_data.movie_id,
        title=movie_data.title,
        year=movie_data.year,
        poster_url=movie_data.poster_url,
        description=movie_data.description,
    )
    return MovieResponse.model_validate(movie)


@router.delete(
    "/{movie_id}",
    response_model=MovieDeleteResponse,
    summary="Delete a movie",
    description="Delete a movie and all of its reviews. Admin only.",
)
@limiter.limit(settings.rate_limit_write)
def delete_movie(
    request: Request,
    movie_id: str,
    engine: Engine,
    principal: CurrentPrincipal,
) -> MovieDeleteResponse:
    """
    Delete a movie, cascading to its reviews.

    If some review batches fail the movie is kept and a 500 is returned;
    repeating the call removes what is left.
    """
    result = engine.delete_movie(movie_id, principal)
    return MovieDeleteResponse(message="Movie deleted", reviews_deleted=result.reviews_deleted)


# =============================================================================
# Rating Endpoints
# =============================================================================


@router.get(
    "/{movie_id}/rating",
    response_model=MovieRatingStats,
    summary="Get movie rating statistics",
    description="Stored rating aggregate plus a distribution of ratings 1-5.",
)
@limiter.limit(settings.rate_limit_default)
def get_movie_rating_stats(
    request: Request,
    movie_id: str,
    movies: Movies,
    reviews: Reviews,
) -> MovieRatingStats:
    stats = catalog.get_rating_stats(movies, reviews, movie_id)
    return MovieRatingStats.model_validate(stats)


@router.post(
    "/{movie_id}/rating/recalculate",
    response_model=MovieResponse,
    summary="Recalculate movie rating",
    description="Rebuild the rating aggregate from the movie's reviews. Admin only.",
)
@limiter.limit(settings.rate_limit_write)
def recalculate_movie_rating(
    request: Request,
    movie_id: str,
    engine: Engine,
    principal: AdminPrincipal,
) -> MovieResponse:
    engine.recalculate_movie_rating(movie_id)
    logger.info(f"Rating of movie {movie_id} recalculated by {principal.subject_id}")
    return MovieResponse.model_validate(catalog.get_movie(engine.movies, movie_id))
