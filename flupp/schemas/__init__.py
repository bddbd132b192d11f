"""Pydantic schemas for API validation."""

from flupp.schemas.booking import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
)
from flupp.schemas.payment import PaymentIntentCreate, PaymentIntentResponse, WebhookAck
from flupp.schemas.review import ReviewCreate, ReviewResponse

__all__ = [
    "BookingCreate",
    "BookingListResponse",
    "BookingResponse",
    "BookingStatusUpdate",
    "PaymentIntentCreate",
    "PaymentIntentResponse",
    "WebhookAck",
    "ReviewCreate",
    "ReviewResponse",
]
