"""
Shared Schema Configuration

API payloads use camelCase keys (movieId, averageRating, canEdit, ...)
while the Python side stays snake_case. CamelModel wires the alias
generator once for every schema.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base schema with camelCase aliases.

    - Responses are serialized by alias (FastAPI's default)
    - Requests accept either the camelCase alias or the field name
    - from_attributes allows model_validate(orm_object)
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    """Plain acknowledgement body."""

    message: str = Field(..., description="Human readable outcome")
