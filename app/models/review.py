"""
Review Model

Represents a user's review of a movie: a 1-5 rating and a comment.

Business Rules:
- One review per user per movie: the reviewer's subject id is the second
  half of the primary key, so a second submission overwrites the first
- Rating must be 1-5
- Users can only edit/delete their own reviews
- Admins can delete any review (moderation)

There is no foreign key to movies. Movies and reviews live in separate
stores and the rating engine removes a movie's reviews itself.
"""

from datetime import UTC, datetime
from typing import NamedTuple

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

MIN_RATING = 1
MAX_RATING = 5


class ReviewKey(NamedTuple):
    """Composite identity of a review: the movie and its author."""

    movie_id: str
    author_id: str


class Review(Base):
    """
    Review model for movie reviews.

    Attributes:
        movie_id: Reviewed movie (first half of the key)
        author_id: Subject id of the author (second half of the key); also
            serves as the review's identifier within the movie
        display_name: Author's username/email at the time of writing
        rating: 1-5 star rating
        comment: Review text
        created_at: Set on first submission, preserved across edits
        updated_at: Refreshed on every submission
    """

    __tablename__ = "reviews"

    movie_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    author_id: Mapped[str] = mapped_column(String(255), primary_key=True, index=True)

    display_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Snapshot of the author's username or email",
    )
    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Rating from 1-5 stars",
    )
    comment: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Review text content",
    )

    # Timestamps
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
        CheckConstraint(
            f"rating >= {MIN_RATING} AND rating <= {MAX_RATING}",
            name="ck_review_rating_range",
        ),
    )

    @property
    def key(self) -> ReviewKey:
        return ReviewKey(self.movie_id, self.author_id)

    @property
    def review_id(self) -> str:
        """A review is identified within its movie by its author."""
        return self.author_id

    def __repr__(self) -> str:
        return (
            f"<Review(movie_id={self.movie_id}, author_id={self.author_id}, "
            f"rating={self.rating})>"
        )
