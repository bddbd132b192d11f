"""Booking-related Pydantic schemas."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from flupp.domain.validation import as_utc
from flupp.schemas.base import CamelModel


class BookingCreate(CamelModel):
    """Schema for creating a booking.

    Only shape and types are checked here; business rules live in
    ``flupp.domain.validation.BOOKING_RULES``.
    """

    pet_name: str
    species: str
    service_type: str
    start_at: datetime
    end_at: datetime
    price_cents: int
    customer_email: EmailStr
    currency: str | None = None


class BookingStatusUpdate(CamelModel):
    """Schema for PATCH /bookings/{id}/status."""

    status: str = Field(..., min_length=1, max_length=30)


class BookingResponse(CamelModel):
    """Schema for booking response."""

    id: str
    pet_name: str
    species: str
    service_type: str
    start_at: datetime
    end_at: datetime
    price_cents: int
    currency: str
    customer_email: str
    status: str
    payment_intent_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("start_at", "end_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive values; everything is stored as UTC
        return as_utc(v)


class BookingListResponse(CamelModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int
