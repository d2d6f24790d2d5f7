"""
SQLAlchemy Models Package

This package contains the database models for the CineNote API.

- Movie: catalog entry carrying the rating aggregate
- Review: one user's rating and comment for one movie, keyed by
          (movie_id, author_id)

Import all models here to:
1. Make them available as: from app.models import Movie, Review
2. Ensure Alembic discovers them for migrations
"""

from app.models.movie import MAX_RELEASE_YEAR, MIN_RELEASE_YEAR, Movie
from app.models.review import MAX_RATING, MIN_RATING, Review, ReviewKey

__all__ = [
    "Movie",
    "Review",
    "ReviewKey",
    "MAX_RELEASE_YEAR",
    "MIN_RELEASE_YEAR",
    "MIN_RATING",
    "MAX_RATING",
]
