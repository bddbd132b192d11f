"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from flupp.database import Base

if TYPE_CHECKING:
    from flupp.models.review import Review


def generate_booking_id() -> str:
    return str(uuid.uuid4())


class Booking(Base):
    """Pet-care booking."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_bookings_interval"),
        CheckConstraint("price_cents > 0", name="ck_bookings_price_positive"),
        Index("ix_bookings_customer_interval", "customer_email", "start_at", "end_at"),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True, default=generate_booking_id)

    # Pet & service
    pet_name: Mapped[str] = mapped_column(String(50), nullable=False)
    species: Mapped[str] = mapped_column(String(20), nullable=False)  # dog, cat, rabbit, bird, other
    service_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # boarding, grooming, daycare, training, walking

    # Interval [start_at, end_at), stored in UTC
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Pricing (minor currency units)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="GBP")

    customer_email: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending_payment", index=True
    )  # pending_payment, confirmed, in_progress, completed, cancelled
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="booking", order_by="Review.created_at.desc()"
    )
