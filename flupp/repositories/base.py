"""Storage interfaces.

Services depend on these interfaces only. ``flupp.repositories.sql`` backs
them with the relational database; ``flupp.repositories.memory`` keeps
everything in process memory for tests and local experiments.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from flupp.domain.validation import BookingDraft, ReviewDraft
from flupp.models.booking import Booking
from flupp.models.review import Review


class BookingRepository(ABC):
    """Persistent bookings keyed by id."""

    @abstractmethod
    async def create(self, draft: BookingDraft, *, now: datetime) -> Booking:
        """Insert a booking in the initial status.

        The overlap check and the insert happen under one per-customer guard.

        Raises:
            ConflictError: if a non-cancelled booking for the same customer
                overlaps ``[draft.start_at, draft.end_at)``
        """

    @abstractmethod
    async def get(self, booking_id: str) -> Booking | None:
        """Point lookup; None when absent."""

    @abstractmethod
    async def list_bookings(
        self,
        *,
        customer_email: str | None = None,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]:
        """Page of bookings, newest first, plus the total match count."""

    @abstractmethod
    async def compare_and_set_status(
        self,
        booking_id: str,
        expected: str,
        new: str,
        *,
        now: datetime,
    ) -> bool:
        """Set ``new`` only if the stored status is still ``expected``.

        Returns:
            True if the row was updated
        """

    @abstractmethod
    async def set_payment_intent(
        self,
        booking_id: str,
        payment_intent_id: str,
        *,
        now: datetime,
    ) -> None:
        """Remember the processor's intent id on the booking."""


class ReviewRepository(ABC):
    @abstractmethod
    async def create(self, draft: ReviewDraft, *, now: datetime) -> Review:
        """Insert a review.

        Raises:
            DuplicateReview: if the booking already has one
        """

    @abstractmethod
    async def list_for_booking(self, booking_id: str) -> list[Review]:
        """Reviews for a booking, newest first."""


class PaymentEventRepository(ABC):
    """Processor events that have already been reconciled."""

    @abstractmethod
    async def seen(self, event_id: str) -> bool:
        pass

    @abstractmethod
    async def record(
        self,
        event_id: str,
        event_type: str,
        booking_id: str | None,
        outcome: str,
        *,
        now: datetime,
    ) -> None:
        pass
