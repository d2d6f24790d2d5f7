"""
Ratings Service

The rating aggregation engine. It keeps three denormalized fields on each
movie in step with the movie's reviews:

- rating_sum: sum of all current review ratings
- rating_count: number of current reviews
- average_rating: rating_sum / rating_count rounded half-up to 2 places,
  None when rating_count is 0

The stores only offer single-record reads and writes, so every mutation
is a read-modify-write: load the movie, write the review, then write the
recomputed aggregate. Two requests touching the same movie at the same
time can interleave and the later aggregate write wins (a lost update).
recalculate_movie_rating() rebuilds an aggregate from the reviews and is
the repair path for that drift.

If the aggregate write fails after the review write succeeded, the review
stays written and the error surfaces as INTERNAL. The next mutation on
that movie, or a recalculation, brings the aggregate back in line.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import SQLAlchemyError

from app.errors import CascadeDeleteError, forbidden, internal, invalid_input, not_found
from app.models import MAX_RATING, MIN_RATING, Movie, Review, ReviewKey
from app.services.auth import Principal, is_admin, is_author, require_admin
from app.services.batching import run_batches
from app.services.stores import ConditionalCheckFailed, MovieStore, ReviewStore

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


# =============================================================================
# Aggregate Arithmetic
# =============================================================================


@dataclass(frozen=True)
class Aggregate:
    rating_sum: int
    rating_count: int
    average_rating: Decimal | None


def average(rating_sum: int, rating_count: int) -> Decimal | None:
    """
    Rounded average of an aggregate.

    >>> average(7, 2)
    Decimal('3.50')
    >>> average(1, 8)
    Decimal('0.13')
    >>> average(0, 0) is None
    True
    """
    if rating_count == 0:
        return None
    quotient = Decimal(rating_sum) / Decimal(rating_count)
    return quotient.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def aggregate_after_upsert(
    movie: Movie,
    rating: int,
    previous_rating: int | None,
) -> Aggregate:
    """
    Aggregate after a review is created (previous_rating None) or edited.

    An edit replaces the old rating's contribution and keeps the count.
    """
    current_sum = movie.rating_sum or 0
    current_count = movie.rating_count or 0

    new_sum = current_sum - (previous_rating or 0) + rating
    new_count = current_count if previous_rating is not None else current_count + 1
    return Aggregate(new_sum, new_count, average(new_sum, new_count))


def aggregate_after_delete(movie: Movie, removed_rating: int) -> Aggregate:
    """Aggregate after a review is removed; both fields floor at zero."""
    new_sum = max(0, (movie.rating_sum or 0) - removed_rating)
    new_count = max(0, (movie.rating_count or 0) - 1)
    return Aggregate(new_sum, new_count, average(new_sum, new_count))


def aggregate_from_ratings(ratings: list[int]) -> Aggregate:
    total = sum(ratings)
    return Aggregate(total, len(ratings), average(total, len(ratings)))


def validate_review_input(rating: object, comment: object) -> tuple[int, str]:
    """
    Check a submitted rating and comment.

    Returns:
        The rating and the trimmed comment

    Raises:
        ServiceError: INVALID_INPUT for a rating outside 1-5 or a blank comment
    """
    if (
        isinstance(rating, bool)
        or not isinstance(rating, int)
        or not MIN_RATING <= rating <= MAX_RATING
    ):
        raise invalid_input(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    if not isinstance(comment, str) or not comment.strip():
        raise invalid_input("Comment is required")

    return rating, comment.strip()


# =============================================================================
# Operation Results
# =============================================================================


@dataclass(frozen=True)
class UpsertResult:
    movie_id: str
    review_id: str
    rating: int
    comment: str
    average_rating: Decimal | None
    rating_count: int
    created: bool


@dataclass(frozen=True)
class ReviewDeleteResult:
    movie_id: str
    review_id: str
    average_rating: Decimal | None
    rating_count: int


@dataclass(frozen=True)
class MovieDeleteResult:
    movie_id: str
    reviews_deleted: int


# =============================================================================
# Rating Engine
# =============================================================================


class RatingEngine:
    """
    Applies review mutations and keeps movie aggregates consistent.

    Args:
        movies: Movie store
        reviews: Review store
        delete_batch_size: Reviews per batch when cascading a movie delete
        delete_concurrency: Batches in flight when cascading a movie delete
    """

    def __init__(
        self,
        movies: MovieStore,
        reviews: ReviewStore,
        delete_batch_size: int = 25,
        delete_concurrency: int = 4,
    ) -> None:
        self.movies = movies
        self.reviews = reviews
        self.delete_batch_size = delete_batch_size
        self.delete_concurrency = delete_concurrency

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def _get_movie_or_404(self, movie_id: str) -> Movie:
        movie = self.movies.get(movie_id)
        if movie is None:
            raise not_found("Movie not found")
        return movie

    def _apply_aggregate(self, movie_id: str, aggregate: Aggregate, operation: str) -> None:
        try:
            self.movies.update_aggregate(
                movie_id,
                aggregate.rating_sum,
                aggregate.rating_count,
                aggregate.average_rating,
            )
        except (SQLAlchemyError, ConditionalCheckFailed) as exc:
            logger.error(
                f"Aggregate update after {operation} failed for movie {movie_id}; "
                f"review store already changed, aggregate is stale: {exc}"
            )
            raise internal(f"Failed to update rating aggregate of movie {movie_id}") from exc

    # -------------------------------------------------------------------------
    # Review Mutations
    # -------------------------------------------------------------------------
    def upsert_review(
        self,
        movie_id: str,
        rating: object,
        comment: object,
        principal: Principal,
    ) -> UpsertResult:
        """
        Create the caller's review of a movie, or replace it if one exists.

        Raises:
            ServiceError: INVALID_INPUT, NOT_FOUND (movie), INTERNAL
        """
        rating, comment = validate_review_input(rating, comment)
        movie = self._get_movie_or_404(movie_id)

        key = ReviewKey(movie_id, principal.subject_id)
        existing = self.reviews.get(key)

        now = datetime.now(UTC)
        self.reviews.put(
            Review(
                movie_id=movie_id,
                author_id=principal.subject_id,
                display_name=principal.display_name,
                rating=rating,
                comment=comment,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
        )

        previous_rating = existing.rating if existing else None
        aggregate = aggregate_after_upsert(movie, rating, previous_rating)
        self._apply_aggregate(movie_id, aggregate, "review upsert")

        logger.info(
            f"Review {'updated' if existing else 'created'} for movie {movie_id} "
            f"by {principal.subject_id}: count={aggregate.rating_count} "
            f"average={aggregate.average_rating}"
        )

        return UpsertResult(
            movie_id=movie_id,
            review_id=principal.subject_id,
            rating=rating,
            comment=comment,
            average_rating=aggregate.average_rating,
            rating_count=aggregate.rating_count,
            created=existing is None,
        )

    def delete_review(
        self,
        movie_id: str,
        reviewer_id: str,
        principal: Principal,
    ) -> ReviewDeleteResult:
        """
        Delete a review and take its rating out of the movie aggregate.

        Only the author or an admin may delete. Authorization is checked
        before the review is looked up.

        Raises:
            ServiceError: FORBIDDEN, NOT_FOUND (review or movie), INTERNAL
        """
        if not (is_author(principal, reviewer_id) or is_admin(principal)):
            raise forbidden("You can only delete your own reviews")

        key = ReviewKey(movie_id, reviewer_id)
        review = self.reviews.get(key)
        if review is None:
            raise not_found("Review not found")

        movie = self.movies.get(movie_id)
        if movie is None:
            logger.warning(f"Review {reviewer_id} references missing movie {movie_id}")
            raise not_found("Movie not found")

        self.reviews.delete(key)

        aggregate = aggregate_after_delete(movie, review.rating)
        self._apply_aggregate(movie_id, aggregate, "review delete")

        logger.info(
            f"Review {reviewer_id} of movie {movie_id} deleted by {principal.subject_id}: "
            f"count={aggregate.rating_count} average={aggregate.average_rating}"
        )

        return ReviewDeleteResult(
            movie_id=movie_id,
            review_id=reviewer_id,
            average_rating=aggregate.average_rating,
            rating_count=aggregate.rating_count,
        )

    # -------------------------------------------------------------------------
    # Movie Deletion
    # -------------------------------------------------------------------------
    def delete_movie(self, movie_id: str, principal: Principal) -> MovieDeleteResult:
        """
        Delete a movie and all of its reviews. Admin only.

        Reviews go first, in concurrent batches. The movie record is only
        removed once every batch has succeeded; otherwise the deleted
        reviews stay deleted, the movie stays, and CascadeDeleteError is
        raised. Calling again finishes the remaining work.

        Raises:
            ServiceError: FORBIDDEN, NOT_FOUND
            CascadeDeleteError: some review batches failed
        """
        require_admin(principal)
        self._get_movie_or_404(movie_id)

        keys = [review.key for review in self.reviews.query(movie_id)]
        outcome = run_batches(
            keys,
            self.reviews.batch_delete,
            batch_size=self.delete_batch_size,
            max_workers=self.delete_concurrency,
        )
        if not outcome.ok:
            raise CascadeDeleteError(movie_id, outcome)

        self.movies.delete(movie_id)

        logger.info(
            f"Movie {movie_id} deleted by {principal.subject_id} "
            f"with {outcome.processed} reviews in {outcome.total_batches} batches"
        )
        return MovieDeleteResult(movie_id=movie_id, reviews_deleted=outcome.processed)

    # -------------------------------------------------------------------------
    # Repair
    # -------------------------------------------------------------------------
    def recalculate_movie_rating(self, movie_id: str) -> Aggregate:
        """
        Rebuild a movie's aggregate from its current reviews.

        Useful after lost updates or a failed aggregate write.

        Raises:
            ServiceError: NOT_FOUND, INTERNAL
        """
        movie = self._get_movie_or_404(movie_id)
        aggregate = aggregate_from_ratings([r.rating for r in self.reviews.query(movie_id)])

        if (movie.rating_sum, movie.rating_count) != (aggregate.rating_sum, aggregate.rating_count):
            logger.warning(
                f"Aggregate drift on movie {movie_id}: stored "
                f"sum={movie.rating_sum} count={movie.rating_count}, actual "
                f"sum={aggregate.rating_sum} count={aggregate.rating_count}"
            )

        self._apply_aggregate(movie_id, aggregate, "recalculation")
        return aggregate

    def recalculate_all_movie_ratings(self) -> int:
        """
        Recalculate rating aggregates for all movies.

        Returns:
            Number of movies updated
        """
        movies = self.movies.scan()
        for movie in movies:
            self.recalculate_movie_rating(movie.movie_id)
        return len(movies)
