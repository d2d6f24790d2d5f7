"""
Movie Pydantic Schemas

Schemas:
- MovieCreate: Body of POST /movies
- MovieSummary: Listing entry
- MovieResponse: Full movie record including the rating aggregate
- MovieDeleteResponse: Outcome of a cascading delete
- MovieRatingStats: Aggregate plus rating distribution

Content rules (required fields, year >= 1888) are enforced by the catalog
service so that every caller gets the same InvalidInput error, not only
HTTP clients. The schemas only pin down types.
"""

from datetime import datetime

from pydantic import ConfigDict, Field

from app.schemas.base import CamelModel, MessageResponse


class MovieCreate(CamelModel):
    """
    Schema for creating a movie.

    Example request body:
    {
        "title": "Metropolis",
        "year": 1927,
        "posterUrl": "https://example.com/metropolis.jpg",
        "description": "A futuristic city sharply divided..."
    }
    """

    movie_id: str | None = Field(
        default=None,
        max_length=64,
        description="Optional client-chosen identifier; a UUID is assigned otherwise",
    )
    title: str | None = Field(
        default=None,
        max_length=500,
        description="Movie title",
        examples=["Metropolis"],
    )
    year: int | str | None = Field(
        default=None,
        description="Release year (1888 or later), number or numeric string",
        examples=[1927, "1927"],
    )
    poster_url: str | None = Field(
        default=None,
        max_length=2000,
        description="Poster image reference",
    )
    description: str | None = Field(
        default=None,
        description="Movie description",
    )


class MovieSummary(CamelModel):
    """Listing entry for GET /movies."""

    movie_id: str = Field(..., description="Unique movie identifier")
    title: str = Field(..., description="Movie title")
    year: int = Field(..., description="Release year")
    poster_url: str = Field(..., description="Poster image reference")
    average_rating: float | None = Field(
        default=None,
        description="Average rating (1-5), null when there are no reviews",
    )
    description: str = Field(..., description="Movie description")


class MovieResponse(MovieSummary):
    """Full movie record."""

    rating_sum: int = Field(..., ge=0, description="Sum of all current review ratings")
    rating_count: int = Field(..., ge=0, description="Number of current reviews")
    created_at: datetime = Field(..., description="When the movie was added")
    updated_at: datetime = Field(..., description="When the movie last changed")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "movieId": "0b6f6c1e-6f0e-4f3b-9a44-3b9f0d3c2a11",
                "title": "Metropolis",
                "year": 1927,
                "posterUrl": "https://example.com/metropolis.jpg",
                "description": "A futuristic city sharply divided...",
                "ratingSum": 9,
                "ratingCount": 2,
                "averageRating": 4.5,
                "createdAt": "2024-01-15T10:30:00Z",
                "updatedAt": "2024-01-16T08:00:00Z",
            }
        },
    )


class MovieDeleteResponse(MessageResponse):
    reviews_deleted: int = Field(..., ge=0, description="Reviews removed with the movie")


class MovieRatingStats(CamelModel):
    """
    Rating statistics for a movie.

    averageRating/ratingSum/ratingCount are the stored aggregate; the
    distribution is counted from the reviews themselves.
    """

    movie_id: str = Field(..., description="Movie ID")
    average_rating: float | None = Field(default=None, description="Stored average rating")
    rating_sum: int = Field(..., ge=0)
    rating_count: int = Field(..., ge=0)
    rating_distribution: dict[int, int] = Field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
        description="Count of each rating (1-5)",
    )
