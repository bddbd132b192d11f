"""Reviews, gated on the booking having been paid."""

import logging

from flupp.config import Settings, settings as default_settings
from flupp.core.exceptions import NotEligible
from flupp.domain.booking_state import is_paid
from flupp.domain.validation import RuleContext, build_review_draft
from flupp.models.review import Review
from flupp.repositories.base import ReviewRepository
from flupp.schemas.review import ReviewCreate
from flupp.services.booking_service import BookingService
from flupp.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(
        self,
        reviews: ReviewRepository,
        booking_service: BookingService,
        *,
        clock: Clock = utcnow,
        settings: Settings | None = None,
    ):
        self.reviews = reviews
        self.booking_service = booking_service
        self.clock = clock
        self.settings = settings or default_settings

    async def create_review(self, data: ReviewCreate) -> Review:
        """Store the single review a paid booking may have.

        Raises:
            ValidationError: rating, comment or reviewer name out of bounds
            NotFoundError: unknown booking
            NotEligible: booking has not been paid
            DuplicateReview: booking already reviewed
        """
        now = self.clock()
        draft = build_review_draft(
            booking_id=data.booking_id,
            rating=data.rating,
            comment=data.comment,
            reviewer_name=data.reviewer_name,
            ctx=RuleContext(now=now, settings=self.settings),
        )

        booking = await self.booking_service.get(draft.booking_id)
        if not is_paid(booking.status):
            raise NotEligible()

        review = await self.reviews.create(draft, now=now)
        logger.info("Review %s (%s/5) added to booking %s", review.id, review.rating, booking.id)
        return review

    async def list_for_booking(self, booking_id: str) -> list[Review]:
        await self.booking_service.get(booking_id)
        return await self.reviews.list_for_booking(booking_id)
