"""API dependencies wiring storage, gateway and services per request."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flupp.config import settings
from flupp.database import get_db
from flupp.gateways.base import PaymentGateway
from flupp.repositories.base import (
    BookingRepository,
    PaymentEventRepository,
    ReviewRepository,
)
from flupp.repositories.sql import (
    SqlBookingRepository,
    SqlPaymentEventRepository,
    SqlReviewRepository,
)
from flupp.services.booking_service import BookingService
from flupp.services.gateway_service import gateway_service
from flupp.services.payment_service import PaymentService
from flupp.services.review_service import ReviewService

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_booking_repository(db: DbSession) -> BookingRepository:
    return SqlBookingRepository(db)


def get_review_repository(db: DbSession) -> ReviewRepository:
    return SqlReviewRepository(db)


def get_payment_event_repository(db: DbSession) -> PaymentEventRepository:
    return SqlPaymentEventRepository(db)


def get_gateway() -> PaymentGateway:
    """Active payment gateway; raises PaymentsNotConfigured when unavailable."""
    return gateway_service.get_gateway()


def get_booking_service(
    bookings: Annotated[BookingRepository, Depends(get_booking_repository)],
) -> BookingService:
    return BookingService(bookings, settings=settings)


def get_review_service(
    reviews: Annotated[ReviewRepository, Depends(get_review_repository)],
    booking_service: Annotated[BookingService, Depends(get_booking_service)],
) -> ReviewService:
    return ReviewService(reviews, booking_service, settings=settings)


def get_payment_service(
    db: DbSession,
    booking_service: Annotated[BookingService, Depends(get_booking_service)],
    events: Annotated[PaymentEventRepository, Depends(get_payment_event_repository)],
    gateway: Annotated[PaymentGateway, Depends(get_gateway)],
) -> PaymentService:
    return PaymentService(
        booking_service,
        events,
        gateway,
        settings=settings,
        rollback=db.rollback,
    )
