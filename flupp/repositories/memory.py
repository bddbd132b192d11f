"""In-memory stores for tests and local runs without a database."""

import uuid
from datetime import datetime

from flupp.core.exceptions import ConflictError, DuplicateReview
from flupp.core.locks import KeyedLocks
from flupp.domain.booking_state import INITIAL_STATUS, BookingStatus
from flupp.domain.validation import BookingDraft, ReviewDraft
from flupp.models.booking import Booking, generate_booking_id
from flupp.models.review import Review
from flupp.repositories.base import (
    BookingRepository,
    PaymentEventRepository,
    ReviewRepository,
)


class InMemoryBookingRepository(BookingRepository):
    def __init__(self) -> None:
        self.bookings: dict[str, Booking] = {}
        self._customer_locks = KeyedLocks()

    def _overlaps(self, draft: BookingDraft) -> Booking | None:
        for booking in self.bookings.values():
            if (
                booking.customer_email == draft.customer_email
                and booking.status != BookingStatus.CANCELLED.value
                and booking.start_at < draft.end_at
                and booking.end_at > draft.start_at
            ):
                return booking
        return None

    async def create(self, draft: BookingDraft, *, now: datetime) -> Booking:
        async with self._customer_locks.hold(draft.customer_email):
            if self._overlaps(draft) is not None:
                raise ConflictError()
            booking = Booking(
                id=generate_booking_id(),
                pet_name=draft.pet_name,
                species=draft.species,
                service_type=draft.service_type,
                start_at=draft.start_at,
                end_at=draft.end_at,
                price_cents=draft.price_cents,
                currency=draft.currency,
                customer_email=draft.customer_email,
                status=INITIAL_STATUS.value,
                payment_intent_id=None,
                created_at=now,
                updated_at=now,
            )
            self.bookings[booking.id] = booking
            return booking

    async def get(self, booking_id: str) -> Booking | None:
        return self.bookings.get(booking_id)

    async def list_bookings(
        self,
        *,
        customer_email: str | None = None,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]:
        matches = [
            b
            for b in reversed(list(self.bookings.values()))
            if (customer_email is None or b.customer_email == customer_email)
            and (status is None or b.status == status)
        ]
        matches.sort(key=lambda b: b.created_at, reverse=True)
        return matches[offset : offset + limit], len(matches)

    async def compare_and_set_status(
        self,
        booking_id: str,
        expected: str,
        new: str,
        *,
        now: datetime,
    ) -> bool:
        booking = self.bookings.get(booking_id)
        if booking is None or booking.status != expected:
            return False
        booking.status = new
        booking.updated_at = now
        return True

    async def set_payment_intent(
        self,
        booking_id: str,
        payment_intent_id: str,
        *,
        now: datetime,
    ) -> None:
        booking = self.bookings.get(booking_id)
        if booking is not None:
            booking.payment_intent_id = payment_intent_id
            booking.updated_at = now


class InMemoryReviewRepository(ReviewRepository):
    def __init__(self) -> None:
        self.reviews: dict[str, Review] = {}

    async def create(self, draft: ReviewDraft, *, now: datetime) -> Review:
        if any(r.booking_id == draft.booking_id for r in self.reviews.values()):
            raise DuplicateReview()
        review = Review(
            id=str(uuid.uuid4()),
            booking_id=draft.booking_id,
            rating=draft.rating,
            comment=draft.comment,
            reviewer_name=draft.reviewer_name,
            created_at=now,
        )
        self.reviews[review.id] = review
        return review

    async def list_for_booking(self, booking_id: str) -> list[Review]:
        matches = [r for r in reversed(list(self.reviews.values())) if r.booking_id == booking_id]
        matches.sort(key=lambda r: r.created_at, reverse=True)
        return matches


class InMemoryPaymentEventRepository(PaymentEventRepository):
    def __init__(self) -> None:
        self.events: dict[str, dict] = {}

    async def seen(self, event_id: str) -> bool:
        return event_id in self.events

    async def record(
        self,
        event_id: str,
        event_type: str,
        booking_id: str | None,
        outcome: str,
        *,
        now: datetime,
    ) -> None:
        self.events[event_id] = {
            "event_type": event_type,
            "booking_id": booking_id,
            "outcome": outcome,
            "received_at": now,
        }
