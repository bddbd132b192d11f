"""Booking lifecycle: creation, lookup and status changes."""

import logging

from flupp.config import Settings, settings as default_settings
from flupp.core.exceptions import ConflictError, NotFoundError
from flupp.domain.booking_state import (
    PAID_STATUSES,
    BookingStatus,
    assert_booking_transition,
    parse_status,
)
from flupp.domain.validation import RuleContext, build_booking_draft
from flupp.models.booking import Booking
from flupp.repositories.base import BookingRepository
from flupp.schemas.booking import BookingCreate
from flupp.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

# Bounded re-read/re-validate loop after losing a compare-and-swap
MAX_STATUS_ATTEMPTS = 3


class PaymentOutcome:
    """Result of applying a payment confirmation to a booking."""

    CONFIRMED = "confirmed"
    ALREADY_PAID = "already_paid"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_MISSING = "booking_missing"


class BookingService:
    def __init__(
        self,
        bookings: BookingRepository,
        *,
        clock: Clock = utcnow,
        settings: Settings | None = None,
    ):
        self.bookings = bookings
        self.clock = clock
        self.settings = settings or default_settings

    async def create(self, data: BookingCreate) -> Booking:
        """Validate, check for overlaps and store a new booking."""
        now = self.clock()
        draft = build_booking_draft(
            pet_name=data.pet_name,
            species=data.species,
            service_type=data.service_type,
            start_at=data.start_at,
            end_at=data.end_at,
            price_cents=data.price_cents,
            customer_email=str(data.customer_email),
            currency=data.currency,
            ctx=RuleContext(now=now, settings=self.settings),
        )
        booking = await self.bookings.create(draft, now=now)
        logger.info(
            "Booking %s created for %s (%s, %s → %s)",
            booking.id,
            booking.customer_email,
            booking.service_type,
            booking.start_at.isoformat(),
            booking.end_at.isoformat(),
        )
        return booking

    async def get(self, booking_id: str) -> Booking:
        booking = await self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    async def list_bookings(
        self,
        *,
        customer_email: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        if status:
            status = parse_status(status).value
        if customer_email:
            customer_email = customer_email.strip().lower()
        return await self.bookings.list_bookings(
            customer_email=customer_email,
            status=status,
            offset=(page - 1) * page_size,
            limit=page_size,
        )

    async def update_status(self, booking_id: str, new_status: str | BookingStatus) -> Booking:
        """Move a booking to ``new_status`` if the state machine allows it.

        Requesting the current status again is a no-op.
        """
        target = new_status if isinstance(new_status, BookingStatus) else parse_status(new_status)

        for _ in range(MAX_STATUS_ATTEMPTS):
            booking = await self.get(booking_id)
            current = BookingStatus(booking.status)
            if current == target:
                return booking

            assert_booking_transition(current, target)

            swapped = await self.bookings.compare_and_set_status(
                booking_id, current.value, target.value, now=self.clock()
            )
            if swapped:
                logger.info("Booking %s status %s → %s", booking_id, current.value, target.value)
                return await self.get(booking_id)

            logger.info("Booking %s changed while updating status; re-reading", booking_id)

        raise ConflictError("Booking was modified concurrently, please retry")

    async def confirm_payment(self, booking_id: str) -> str:
        """Apply a successful payment. Safe to call repeatedly.

        Returns:
            One of the PaymentOutcome values
        """
        for _ in range(MAX_STATUS_ATTEMPTS):
            booking = await self.bookings.get(booking_id)
            if booking is None:
                return PaymentOutcome.BOOKING_MISSING

            current = BookingStatus(booking.status)
            if current in PAID_STATUSES:
                return PaymentOutcome.ALREADY_PAID
            if current == BookingStatus.CANCELLED:
                return PaymentOutcome.BOOKING_CANCELLED

            swapped = await self.bookings.compare_and_set_status(
                booking_id,
                current.value,
                BookingStatus.CONFIRMED.value,
                now=self.clock(),
            )
            if swapped:
                logger.info("Booking %s confirmed by payment", booking_id)
                return PaymentOutcome.CONFIRMED

        raise ConflictError("Booking was modified concurrently while confirming payment")

    async def attach_payment_intent(self, booking_id: str, payment_intent_id: str) -> None:
        await self.bookings.set_payment_intent(booking_id, payment_intent_id, now=self.clock())
