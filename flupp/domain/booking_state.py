"""Booking state machine."""

from enum import Enum

from flupp.core.exceptions import InvalidTransition, ValidationError


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


INITIAL_STATUS = BookingStatus.PENDING_PAYMENT

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

# Statuses reached only after a successful payment
PAID_STATUSES = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED}
)

TERMINAL_STATUSES = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if not targets
)

# Three-state vocabulary used by older clients
LEGACY_STATUS_ALIASES: dict[str, BookingStatus] = {
    "pending": BookingStatus.PENDING_PAYMENT,
    "paid": BookingStatus.CONFIRMED,
    "cancelled": BookingStatus.CANCELLED,
}


def parse_status(value: str) -> BookingStatus:
    """Resolve a canonical or legacy status name."""
    normalized = value.strip().lower()
    try:
        return BookingStatus(normalized)
    except ValueError:
        pass
    if normalized in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[normalized]
    allowed = ", ".join(s.value for s in BookingStatus)
    raise ValidationError(f"Status must be one of: {allowed}", field="status")


def is_paid(status: str | BookingStatus) -> bool:
    return BookingStatus(status) in PAID_STATUSES


def can_transition(current: str | BookingStatus, target: str | BookingStatus) -> bool:
    return BookingStatus(target) in BOOKING_TRANSITIONS.get(BookingStatus(current), set())


def assert_booking_transition(current: str | BookingStatus, target: str | BookingStatus) -> None:
    current = BookingStatus(current)
    target = BookingStatus(target)
    if current in PAID_STATUSES and target == BookingStatus.PENDING_PAYMENT:
        raise InvalidTransition(
            current.value,
            target.value,
            detail="Cannot change paid booking back to pending",
        )
    if current == BookingStatus.CANCELLED:
        raise InvalidTransition(
            current.value,
            target.value,
            detail="Cancelled bookings cannot be reopened",
        )
    if not can_transition(current, target):
        raise InvalidTransition(current.value, target.value)
