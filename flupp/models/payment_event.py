"""Processed payment-processor events."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from flupp.database import Base


class PaymentEvent(Base):
    """One row per authenticated processor event that was reconciled.

    The primary key on the processor's event id is what makes webhook replays
    detectable at the store level.
    """

    __tablename__ = "payment_events"

    event_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    booking_id: Mapped[str | None] = mapped_column(String(50), index=True)
    outcome: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # confirmed, already_paid, booking_cancelled, booking_missing, ignored, payment_failed
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
