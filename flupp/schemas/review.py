"""Review-related Pydantic schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from flupp.domain.validation import as_utc
from flupp.schemas.base import CamelModel


class ReviewCreate(CamelModel):
    """Schema for creating a review."""

    booking_id: str = Field(..., min_length=1, max_length=50)
    rating: int
    comment: str
    reviewer_name: str


class ReviewResponse(CamelModel):
    """Schema for review response."""

    id: str
    booking_id: str
    rating: int
    comment: str
    reviewer_name: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)
