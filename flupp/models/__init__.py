"""Database models."""

from flupp.models.booking import Booking
from flupp.models.payment_event import PaymentEvent
from flupp.models.review import Review

__all__ = [
    "Booking",
    "PaymentEvent",
    "Review",
]
