"""SQLAlchemy-backed stores."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flupp.core.exceptions import ConflictError, DuplicateReview
from flupp.core.locks import customer_locks
from flupp.domain.booking_state import INITIAL_STATUS, BookingStatus
from flupp.domain.validation import BookingDraft, ReviewDraft
from flupp.models.booking import Booking, generate_booking_id
from flupp.models.payment_event import PaymentEvent
from flupp.models.review import Review
from flupp.repositories.base import (
    BookingRepository,
    PaymentEventRepository,
    ReviewRepository,
)

logger = logging.getLogger(__name__)


def overlap_filter(customer_email: str, start_at: datetime, end_at: datetime) -> list:
    """Non-cancelled bookings of this customer intersecting [start_at, end_at)."""
    return [
        Booking.customer_email == customer_email,
        Booking.status != BookingStatus.CANCELLED.value,
        Booking.start_at < end_at,
        Booking.end_at > start_at,
    ]


class SqlBookingRepository(BookingRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    def _dialect(self) -> str:
        return self.db.get_bind().dialect.name

    @asynccontextmanager
    async def _customer_guard(self, customer_email: str) -> AsyncIterator[None]:
        """Serialize booking creation per customer.

        PostgreSQL gets a transaction-scoped advisory lock, released on commit
        or rollback; the exclusion constraint from the initial migration backs
        it up. Other dialects fall back to an in-process lock, so the insert
        is committed before that lock is released.
        """
        if self._dialect() == "postgresql":
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"booking-customer:{customer_email}"},
            )
            yield
        else:
            async with customer_locks.hold(customer_email):
                yield

    async def create(self, draft: BookingDraft, *, now: datetime) -> Booking:
        async with self._customer_guard(draft.customer_email):
            result = await self.db.execute(
                select(Booking.id)
                .where(*overlap_filter(draft.customer_email, draft.start_at, draft.end_at))
                .limit(1)
            )
            clash = result.scalar_one_or_none()
            if clash is not None:
                logger.info(
                    "Booking conflict for %s with existing booking %s",
                    draft.customer_email,
                    clash,
                )
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
            self.db.add(booking)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                # Overlap exclusion constraint fired for a concurrent insert
                raise ConflictError() from exc
            if self._dialect() != "postgresql":
                # The next creator must see this row once the lock is free
                await self.db.commit()
        return booking

    async def get(self, booking_id: str) -> Booking | None:
        return await self.db.get(Booking, booking_id, populate_existing=True)

    async def list_bookings(
        self,
        *,
        customer_email: str | None = None,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Booking], int]:
        query = select(Booking)
        if customer_email:
            query = query.where(Booking.customer_email == customer_email)
        if status:
            query = query.where(Booking.status == status)

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        query = query.order_by(Booking.created_at.desc(), Booking.id).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def compare_and_set_status(
        self,
        booking_id: str,
        expected: str,
        new: str,
        *,
        now: datetime,
    ) -> bool:
        # get() refreshes the identity map, so no session synchronization here
        result = await self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected)
            .values(status=new, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_payment_intent(
        self,
        booking_id: str,
        payment_intent_id: str,
        *,
        now: datetime,
    ) -> None:
        await self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .values(payment_intent_id=payment_intent_id, updated_at=now)
            .execution_options(synchronize_session=False)
        )


class SqlReviewRepository(ReviewRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, draft: ReviewDraft, *, now: datetime) -> Review:
        existing = await self.db.execute(
            select(Review.id).where(Review.booking_id == draft.booking_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateReview()

        review = Review(
            booking_id=draft.booking_id,
            rating=draft.rating,
            comment=draft.comment,
            reviewer_name=draft.reviewer_name,
            created_at=now,
        )
        self.db.add(review)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            # Unique booking_id lost a race with a concurrent insert
            raise DuplicateReview() from exc
        return review

    async def list_for_booking(self, booking_id: str) -> list[Review]:
        result = await self.db.execute(
            select(Review)
            .where(Review.booking_id == booking_id)
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())


class SqlPaymentEventRepository(PaymentEventRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def seen(self, event_id: str) -> bool:
        return await self.db.get(PaymentEvent, event_id) is not None

    async def record(
        self,
        event_id: str,
        event_type: str,
        booking_id: str | None,
        outcome: str,
        *,
        now: datetime,
    ) -> None:
        self.db.add(
            PaymentEvent(
                event_id=event_id,
                event_type=event_type,
                booking_id=booking_id,
                outcome=outcome,
                received_at=now,
            )
        )
        await self.db.flush()
