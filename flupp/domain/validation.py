"""Field-level business rules for bookings and reviews.

Pydantic handles shape and type coercion at the HTTP edge. The rules here are
the semantic checks, kept as explicit tables of (field, predicate, message).
Rules are evaluated in order and the first failure wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

from flupp.config import Settings, settings as default_settings
from flupp.core.exceptions import ValidationError

SPECIES = ("dog", "cat", "rabbit", "bird", "other")
SERVICE_TYPES = ("boarding", "grooming", "daycare", "training", "walking")

REVIEW_COMMENT_MIN = 5
REVIEW_COMMENT_MAX = 1000
REVIEWER_NAME_MAX = 100


@dataclass(frozen=True)
class RuleContext:
    """Inputs a rule may need besides the subject itself."""

    now: datetime
    settings: Settings = field(default_factory=lambda: default_settings)

    def format_args(self) -> dict[str, Any]:
        return {
            "max_days": self.settings.booking_max_days,
            "min_price": self.settings.price_min_cents,
            "max_price": self.settings.price_max_cents,
            "currencies": ", ".join(self.settings.supported_currencies),
            "pet_name_max": self.settings.pet_name_max_length,
            "email_max": self.settings.customer_email_max_length,
            "species": ", ".join(SPECIES),
            "service_types": ", ".join(SERVICE_TYPES),
            "comment_min": REVIEW_COMMENT_MIN,
            "comment_max": REVIEW_COMMENT_MAX,
            "reviewer_max": REVIEWER_NAME_MAX,
        }


@dataclass(frozen=True)
class Rule:
    field: str
    check: Callable[[Any, RuleContext], bool]
    message: str


@dataclass(frozen=True)
class BookingDraft:
    """Normalized, validated input for a new booking."""

    pet_name: str
    species: str
    service_type: str
    start_at: datetime
    end_at: datetime
    price_cents: int
    currency: str
    customer_email: str


@dataclass(frozen=True)
class ReviewDraft:
    booking_id: str
    rating: int
    comment: str
    reviewer_name: str


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


BOOKING_RULES: list[Rule] = [
    Rule("petName", lambda b, ctx: len(b.pet_name) > 0, "Pet name is required"),
    Rule(
        "petName",
        lambda b, ctx: len(b.pet_name) <= ctx.settings.pet_name_max_length,
        "Pet name too long (max {pet_name_max} characters)",
    ),
    Rule("species", lambda b, ctx: b.species in SPECIES, "Invalid species (expected one of: {species})"),
    Rule(
        "serviceType",
        lambda b, ctx: b.service_type in SERVICE_TYPES,
        "Invalid service type (expected one of: {service_types})",
    ),
    Rule("startAt", lambda b, ctx: b.start_at > ctx.now, "Start date must be in the future"),
    Rule("endAt", lambda b, ctx: b.end_at > b.start_at, "End date must be after start date"),
    Rule(
        "endAt",
        lambda b, ctx: b.end_at - b.start_at <= timedelta(days=ctx.settings.booking_max_days),
        "Booking duration cannot exceed {max_days} days",
    ),
    Rule(
        "priceCents",
        lambda b, ctx: b.price_cents >= ctx.settings.price_min_cents,
        "Minimum price is {min_price} minor units",
    ),
    Rule(
        "priceCents",
        lambda b, ctx: b.price_cents <= ctx.settings.price_max_cents,
        "Price too high (maximum {max_price} minor units)",
    ),
    Rule(
        "customerEmail",
        lambda b, ctx: len(b.customer_email) <= ctx.settings.customer_email_max_length,
        "Email too long (max {email_max} characters)",
    ),
    Rule(
        "currency",
        lambda b, ctx: len(b.currency) == 3 and b.currency.isalpha(),
        "Currency must be 3 letters",
    ),
    Rule(
        "currency",
        lambda b, ctx: b.currency in ctx.settings.supported_currencies,
        "Unsupported currency (expected one of: {currencies})",
    ),
]

REVIEW_RULES: list[Rule] = [
    Rule("rating", lambda r, ctx: 1 <= r.rating <= 5, "Rating must be between 1 and 5"),
    Rule(
        "comment",
        lambda r, ctx: len(r.comment) >= REVIEW_COMMENT_MIN,
        "Comment must be at least {comment_min} characters",
    ),
    Rule(
        "comment",
        lambda r, ctx: len(r.comment) <= REVIEW_COMMENT_MAX,
        "Comment too long (max {comment_max} characters)",
    ),
    Rule("reviewerName", lambda r, ctx: len(r.reviewer_name) > 0, "Reviewer name is required"),
    Rule(
        "reviewerName",
        lambda r, ctx: len(r.reviewer_name) <= REVIEWER_NAME_MAX,
        "Reviewer name too long (max {reviewer_max} characters)",
    ),
]


def first_failure(rules: list[Rule], subject: Any, ctx: RuleContext) -> Rule | None:
    for rule in rules:
        if not rule.check(subject, ctx):
            return rule
    return None


def enforce(rules: list[Rule], subject: Any, ctx: RuleContext) -> None:
    """Raise ValidationError with the first failing rule's message."""
    failed = first_failure(rules, subject, ctx)
    if failed is not None:
        raise ValidationError(failed.message.format(**ctx.format_args()), field=failed.field)


def build_booking_draft(
    *,
    pet_name: str,
    species: str,
    service_type: str,
    start_at: datetime,
    end_at: datetime,
    price_cents: int,
    customer_email: str,
    currency: str | None,
    ctx: RuleContext,
) -> BookingDraft:
    """Normalize raw booking fields and check them against BOOKING_RULES."""
    draft = BookingDraft(
        pet_name=pet_name.strip(),
        species=species.strip().lower(),
        service_type=service_type.strip().lower(),
        start_at=as_utc(start_at),
        end_at=as_utc(end_at),
        price_cents=price_cents,
        currency=(
            ctx.settings.default_currency if currency is None else currency
        ).strip().upper(),
        customer_email=customer_email.strip().lower(),
    )
    enforce(BOOKING_RULES, draft, ctx)
    return draft


def build_review_draft(
    *,
    booking_id: str,
    rating: int,
    comment: str,
    reviewer_name: str,
    ctx: RuleContext,
) -> ReviewDraft:
    draft = ReviewDraft(
        booking_id=booking_id.strip(),
        rating=rating,
        comment=comment.strip(),
        reviewer_name=reviewer_name.strip(),
    )
    enforce(REVIEW_RULES, draft, ctx)
    return draft
