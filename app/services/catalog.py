"""
Catalog Service

Movie catalog operations and the read-side review listings.

- create_movie: admin-only, validated, conditional insert
- list_movies / get_movie: anonymous reads
- list_movie_reviews: reviews of one movie with per-caller capability flags
- list_all_reviews: admin moderation view, each review tagged with its
  movie's title
- get_rating_stats: stored aggregate plus a rating distribution
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from app.errors import conflict, invalid_input, not_found
from app.models import MAX_RATING, MAX_RELEASE_YEAR, MIN_RATING, MIN_RELEASE_YEAR, Movie, Review
from app.services.auth import Capabilities, Principal, capabilities, require_admin
from app.services.stores import ConditionalCheckFailed, MovieStore, ReviewStore

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "unknown"


# =============================================================================
# Movies
# =============================================================================


def parse_year(value: object) -> int:
    """
    Parse a release year given as an int or a numeric string.

    Raises:
        ServiceError: INVALID_INPUT if unparseable or outside 1888..9999
    """
    if isinstance(value, bool):
        raise invalid_input("Year must be a valid number")
    if isinstance(value, int):
        year = value
    elif isinstance(value, str):
        try:
            year = int(value.strip())
        except ValueError:
            raise invalid_input("Year must be a valid number") from None
    else:
        raise invalid_input("Year must be a valid number")

    if year < MIN_RELEASE_YEAR:
        raise invalid_input(f"Year must be {MIN_RELEASE_YEAR} or later")
    if year > MAX_RELEASE_YEAR:
        raise invalid_input(f"Year must be {MAX_RELEASE_YEAR} or earlier")
    return year


def _required_text(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise invalid_input(f"Missing required field: {name}")
    return value.strip()


def create_movie(
    movies: MovieStore,
    principal: Principal,
    *,
    title: str | None,
    year: object,
    poster_url: str | None,
    description: str | None,
    movie_id: str | None = None,
) -> Movie:
    """
    Add a movie to the catalog. Admin only.

    A fresh UUID is assigned unless the caller supplies movie_id. The
    aggregate starts empty.

    Raises:
        ServiceError: FORBIDDEN, INVALID_INPUT, CONFLICT (duplicate id)
    """
    require_admin(principal)

    movie = Movie(
        movie_id=(movie_id.strip() if movie_id and movie_id.strip() else str(uuid.uuid4())),
        title=_required_text(title, "title"),
        poster_url=_required_text(poster_url, "posterUrl"),
        description=_required_text(description, "description"),
        year=parse_year(year),
        rating_sum=0,
        rating_count=0,
        average_rating=None,
    )

    try:
        created = movies.put_if_absent(movie)
    except ConditionalCheckFailed:
        logger.warning(f"Movie id {movie.movie_id} already taken")
        raise conflict(f"Movie {movie.movie_id} already exists") from None

    logger.info(f"Movie {created.movie_id} '{created.title}' created by {principal.subject_id}")
    return created


def list_movies(movies: MovieStore) -> list[Movie]:
    return movies.scan()


def get_movie(movies: MovieStore, movie_id: str) -> Movie:
    movie = movies.get(movie_id)
    if movie is None:
        raise not_found("Movie not found")
    return movie


# =============================================================================
# Review Listings
# =============================================================================


@dataclass(frozen=True)
class ReviewView:
    review: Review
    capabilities: Capabilities


@dataclass(frozen=True)
class ModerationView:
    review: Review
    movie_title: str


def list_movie_reviews(
    reviews: ReviewStore,
    movie_id: str,
    principal: Principal | None,
) -> list[ReviewView]:
    """Reviews of a movie, newest first, with the caller's capabilities."""
    return [
        ReviewView(review=review, capabilities=capabilities(principal, review))
        for review in reviews.query(movie_id)
    ]


def list_all_reviews(
    movies: MovieStore,
    reviews: ReviewStore,
    principal: Principal,
) -> list[ModerationView]:
    """
    Every review, newest first, tagged with its movie's title. Admin only.

    Titles are looked up once per movie. A failed or empty lookup only
    degrades that movie's rows to "unknown".
    """
    require_admin(principal)

    titles: dict[str, str] = {}

    def title_of(movie_id: str) -> str:
        if movie_id not in titles:
            try:
                movie = movies.get(movie_id)
            except SQLAlchemyError as exc:
                logger.warning(f"Title lookup failed for movie {movie_id}: {exc}")
                movie = None
            titles[movie_id] = movie.title if movie is not None else UNKNOWN_TITLE
        return titles[movie_id]

    return [
        ModerationView(review=review, movie_title=title_of(review.movie_id))
        for review in reviews.scan()
    ]


# =============================================================================
# Rating Statistics
# =============================================================================


@dataclass(frozen=True)
class RatingStats:
    movie_id: str
    average_rating: Decimal | None
    rating_sum: int
    rating_count: int
    rating_distribution: dict[int, int] = field(default_factory=dict)


def get_rating_stats(movies: MovieStore, reviews: ReviewStore, movie_id: str) -> RatingStats:
    """
    Stored aggregate of a movie plus how many reviews gave each rating.

    The aggregate is reported as stored; the distribution is counted from
    the review store.
    """
    movie = get_movie(movies, movie_id)

    distribution = {rating: 0 for rating in range(MIN_RATING, MAX_RATING + 1)}
    for review in reviews.query(movie_id):
        distribution[review.rating] = distribution.get(review.rating, 0) + 1

    return RatingStats(
        movie_id=movie.movie_id,
        average_rating=movie.average_rating,
        rating_sum=movie.rating_sum,
        rating_count=movie.rating_count,
        rating_distribution=distribution,
    )
