"""
Movie Model

A movie in the catalog together with its rating aggregate.

Aggregate fields:
- rating_sum: sum of the ratings of all current reviews (authoritative)
- rating_count: number of current reviews (authoritative)
- average_rating: rating_sum / rating_count rounded to 2 places, NULL when
  rating_count is 0 (cached, derived)

Only the rating engine writes the aggregate fields.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

MIN_RELEASE_YEAR = 1888
MAX_RELEASE_YEAR = 9999


class Movie(Base):
    """
    Movie model.

    Table: movies

    Attributes:
        movie_id: Primary key (UUID string, or client-chosen at creation)
        title: Movie title
        year: Release year, 1888 or later
        poster_url: Poster image reference
        description: Synopsis
        rating_sum: Sum of current review ratings
        rating_count: Number of current reviews
        average_rating: Cached rounded average, NULL without reviews
        created_at: When the movie was added
        updated_at: When the movie or its aggregate last changed
    """

    __tablename__ = "movies"

    movie_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Movie title",
    )
    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Release year",
    )
    poster_url: Mapped[str] = mapped_column(
        String(2000),
        nullable=False,
        comment="Poster image reference",
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Movie description",
    )

    # -------------------------------------------------------------------------
    # Rating Aggregate
    # -------------------------------------------------------------------------
    rating_sum: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Sum of all current review ratings",
    )
    rating_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Number of current reviews",
    )
    average_rating: Mapped[Decimal | None] = mapped_column(
        Numeric(3, 2),
        nullable=True,
        comment="Average review rating (1.00-5.00), null if no reviews",
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        index=True,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(f"year >= {MIN_RELEASE_YEAR}", name="ck_movie_year_min"),
        CheckConstraint("rating_sum >= 0", name="ck_movie_rating_sum_non_negative"),
        CheckConstraint("rating_count >= 0", name="ck_movie_rating_count_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"Movie(movie_id='{self.movie_id}', title='{self.title}', "
            f"rating_sum={self.rating_sum}, rating_count={self.rating_count})"
        )
