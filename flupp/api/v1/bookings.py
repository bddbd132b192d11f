"""Booking endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from flupp.api.deps import get_booking_service
from flupp.models.booking import Booking
from flupp.schemas.booking import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
)
from flupp.services.booking_service import BookingService

router = APIRouter()

Bookings = Annotated[BookingService, Depends(get_booking_service)]


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(booking_data: BookingCreate, bookings: Bookings) -> Booking:
    """Create a booking in ``pending_payment``.

    Fails with 400 on a rule violation and 409 when the customer already has
    an overlapping booking.
    """
    return await bookings.create(booking_data)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    bookings: Bookings,
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    status_filter: str | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100, alias="pageSize"),
) -> BookingListResponse:
    """List bookings, newest first."""
    items, total = await bookings.list_bookings(
        customer_email=customer_email,
        status=status_filter,
        page=page,
        page_size=page_size,
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, bookings: Bookings) -> Booking:
    return await bookings.get(booking_id)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate,
    bookings: Bookings,
) -> Booking:
    """Move a booking through its lifecycle."""
    return await bookings.update_status(booking_id, update.status)
