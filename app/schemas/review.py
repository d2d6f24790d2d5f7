"""
Review Pydantic Schemas

Schemas for movie reviews.

Schemas:
- ReviewUpsert: Body of POST /movies/{movie_id}/reviews
- ReviewResponse: Review of one movie with the caller's capability flags
- ReviewUpsertResponse: Review fields echoed with the new aggregate
- ReviewDeleteResponse: New aggregate after a delete
- ModerationReviewResponse: Admin listing entry, tagged with movie title

Business Rules:
- Rating must be 1-5, comment must not be blank (checked by the rating
  engine, reported as 400)
- One review per user per movie: posting again edits the same review
"""

from datetime import datetime

from pydantic import ConfigDict, Field, StrictInt

from app.schemas.base import CamelModel, MessageResponse


class ReviewUpsert(CamelModel):
    """
    Schema for creating or editing the caller's review.

    Example request body:
    {
        "rating": 5,
        "comment": "Still astonishing a century later."
    }
    """

    rating: StrictInt | None = Field(
        default=None,
        description="Rating from 1 to 5 stars, a JSON integer (no strings or booleans)",
        examples=[4, 5],
    )
    comment: str | None = Field(
        default=None,
        max_length=5000,
        description="Review text, at most 5000 characters",
        examples=["Still astonishing a century later."],
    )


class ReviewResponse(CamelModel):
    """A review as listed under its movie."""

    review_id: str = Field(..., description="Review identifier (equals the author id)")
    author_id: str = Field(..., description="Subject id of the author")
    display_name: str | None = Field(default=None, description="Author's name at writing time")
    rating: int = Field(..., ge=1, le=5)
    comment: str
    created_at: datetime
    updated_at: datetime
    can_edit: bool = Field(default=False, description="Caller wrote this review")
    can_delete: bool = Field(default=False, description="Caller wrote this review or is an admin")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "reviewId": "c1a2b3",
                "authorId": "c1a2b3",
                "displayName": "filmfan",
                "rating": 5,
                "comment": "Still astonishing a century later.",
                "createdAt": "2024-01-15T10:30:00Z",
                "updatedAt": "2024-01-15T10:30:00Z",
                "canEdit": True,
                "canDelete": True,
            }
        },
    )


class ReviewUpsertResponse(CamelModel):
    """Returned with 201 (created) or 200 (edited)."""

    movie_id: str
    review_id: str
    rating: int
    comment: str
    average_rating: float | None = Field(default=None, description="New average rating")
    rating_count: int = Field(..., ge=0, description="New review count")


class ReviewDeleteResponse(MessageResponse):
    average_rating: float | None = Field(default=None, description="New average rating")
    rating_count: int = Field(..., ge=0, description="New review count")


class ModerationReviewResponse(CamelModel):
    """Entry of the admin listing of all reviews."""

    movie_id: str
    movie_title: str = Field(..., description='Title of the movie, "unknown" if unavailable')
    review_id: str
    author_id: str
    display_name: str | None = None
    rating: int
    comment: str
    created_at: datetime
    updated_at: datetime
