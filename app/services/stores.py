"""
Movie and Review Stores

Thin key-value style adapters over the movies and reviews tables.

Each public method opens its own session, performs a single read or a
single write, and closes the session. Nothing here coordinates writes
across the two stores; keeping the movie aggregate in step with the
reviews is the rating engine's job.

Store failures (SQLAlchemyError) propagate unchanged. A conditional write
whose condition does not hold raises ConditionalCheckFailed.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError

from app.database import SessionFactory
from app.models import Movie, Review, ReviewKey

logger = logging.getLogger(__name__)


class ConditionalCheckFailed(Exception):
    """A conditional write found the record in an unexpected state."""


# =============================================================================
# Movie Store
# =============================================================================


class MovieStore:
    """Movie records addressed by movie_id."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, movie_id: str) -> Movie | None:
        with self._session_factory() as session:
            return session.get(Movie, movie_id)

    def scan(self) -> list[Movie]:
        """All movies, newest first."""
        with self._session_factory() as session:
            stmt = select(Movie).order_by(Movie.created_at.desc())
            return list(session.execute(stmt).scalars().all())

    def put_if_absent(self, movie: Movie) -> Movie:
        """
        Insert a movie unless one with the same id exists.

        Raises:
            ConditionalCheckFailed: movie_id is already taken
        """
        with self._session_factory() as session:
            session.add(movie)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConditionalCheckFailed(
                    f"Movie {movie.movie_id} already exists"
                ) from exc
            return movie

    def delete(self, movie_id: str) -> bool:
        with self._session_factory() as session:
            result = session.execute(delete(Movie).where(Movie.movie_id == movie_id))
            session.commit()
            return result.rowcount > 0

    def update_aggregate(
        self,
        movie_id: str,
        rating_sum: int,
        rating_count: int,
        average_rating: Decimal | None,
    ) -> None:
        """
        Overwrite a movie's rating aggregate.

        The write is conditional on the movie still existing so a movie
        deleted mid-request is never partially recreated.

        Raises:
            ConditionalCheckFailed: the movie no longer exists
        """
        stmt = (
            update(Movie)
            .where(Movie.movie_id == movie_id)
            .values(
                rating_sum=rating_sum,
                rating_count=rating_count,
                average_rating=average_rating,
                updated_at=datetime.now(UTC),
            )
        )
        with self._session_factory() as session:
            updated = session.execute(stmt).rowcount
            session.commit()

        if updated == 0:
            raise ConditionalCheckFailed(f"Movie {movie_id} does not exist")


# =============================================================================
# Review Store
# =============================================================================


class ReviewStore:
    """Review records addressed by (movie_id, author_id)."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, key: ReviewKey) -> Review | None:
        with self._session_factory() as session:
            return session.get(Review, (key.movie_id, key.author_id))

    def put(self, review: Review) -> Review:
        """Insert or fully overwrite the review stored under review.key."""
        with self._session_factory() as session:
            stored = session.merge(review)
            session.commit()
            return stored

    def delete(self, key: ReviewKey) -> bool:
        stmt = delete(Review).where(
            Review.movie_id == key.movie_id,
            Review.author_id == key.author_id,
        )
        with self._session_factory() as session:
            result = session.execute(stmt)
            session.commit()
            return result.rowcount > 0

    def query(self, movie_id: str) -> list[Review]:
        """All reviews of one movie, newest first."""
        stmt = (
            select(Review)
            .where(Review.movie_id == movie_id)
            .order_by(Review.created_at.desc())
        )
        with self._session_factory() as session:
            return list(session.execute(stmt).scalars().all())

    def scan(self) -> list[Review]:
        """Every review of every movie, newest first."""
        stmt = select(Review).order_by(Review.created_at.desc())
        with self._session_factory() as session:
            return list(session.execute(stmt).scalars().all())

    def batch_delete(self, keys: Sequence[ReviewKey]) -> int:
        """
        Delete a batch of reviews in one statement.

        Returns:
            Number of reviews removed
        """
        if not keys:
            return 0

        stmt = delete(Review).where(
            or_(
                *(
                    and_(Review.movie_id == key.movie_id, Review.author_id == key.author_id)
                    for key in keys
                )
            )
        )
        with self._session_factory() as session:
            deleted = session.execute(stmt).rowcount
            session.commit()

        logger.debug(f"Deleted {deleted} of {len(keys)} reviews in batch")
        return deleted
