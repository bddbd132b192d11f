"""Payment bridge between bookings and the card processor.

Outbound: issue (or reuse) a payment intent for a booking.
Inbound: the processor's webhook, handled as an explicit pipeline

    RawWebhook --verify()--> VerifiedEvent --reconcile()--> WebhookAck

Only ``verify`` builds a VerifiedEvent, so nothing unauthenticated reaches
``reconcile``. ``acknowledge_best_effort`` is the variant the HTTP route uses:
once the signature is good the processor always gets a 2xx back.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from flupp.config import Settings, settings as default_settings
from flupp.core.exceptions import (
    AlreadyCancelled,
    AlreadyPaid,
    DependencyError,
    DependencyTimeout,
    InvalidPrice,
    WebhookSignatureError,
)
from flupp.domain.booking_state import BookingStatus, is_paid
from flupp.gateways.base import PaymentGateway
from flupp.models.booking import Booking
from flupp.repositories.base import PaymentEventRepository
from flupp.schemas.payment import PaymentIntentResponse, WebhookAck
from flupp.services.booking_service import BookingService, PaymentOutcome
from flupp.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"

OUTCOME_PAYMENT_FAILED = "payment_failed"
OUTCOME_IGNORED = "ignored"
OUTCOME_DUPLICATE = "duplicate"
HANDLER_ERROR_WARNING = "handler-error"


def assert_payable(booking: Booking) -> None:
    """Guard: only unpaid, live bookings can be charged."""
    if is_paid(booking.status):
        raise AlreadyPaid()
    if booking.status == BookingStatus.CANCELLED.value:
        raise AlreadyCancelled()


def assert_price_in_bounds(amount: int, settings: Settings) -> None:
    """Guard: the processor rejects amounts outside these bounds."""
    if amount < settings.price_min_cents:
        raise InvalidPrice(f"Minimum price is {settings.price_min_cents} minor units")
    if amount > settings.price_max_cents:
        raise InvalidPrice(f"Maximum price is {settings.price_max_cents} minor units")


def intent_idempotency_key(booking_id: str, previous_intent_id: str | None) -> str:
    """Processor idempotency key for issuing an intent.

    Changes only once a new intent has been attached to the booking, so a
    retried request cannot create a second intent.
    """
    return f"booking-{booking_id}-after-{previous_intent_id or 'none'}"


@dataclass(frozen=True)
class RawWebhook:
    """Webhook request body exactly as received, plus its signature header."""

    payload: bytes
    signature: str | None


@dataclass(frozen=True)
class VerifiedEvent:
    """A processor event whose signature has been checked."""

    id: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def payment_intent_id(self) -> str | None:
        return self.data.get("id")

    @property
    def booking_id(self) -> str | None:
        metadata = self.data.get("metadata") or {}
        return metadata.get("bookingId")


class PaymentService:
    """Issues payment intents and applies processor events to bookings."""

    def __init__(
        self,
        booking_service: BookingService,
        events: PaymentEventRepository,
        gateway: PaymentGateway,
        *,
        clock: Clock = utcnow,
        settings: Settings | None = None,
        rollback: Callable[[], Awaitable[None]] | None = None,
    ):
        self.booking_service = booking_service
        self.events = events
        self.gateway = gateway
        self.clock = clock
        self.settings = settings or default_settings
        self._rollback = rollback

    async def create_intent(self, booking_id: str) -> PaymentIntentResponse:
        """Return a client secret the customer can pay with.

        Raises:
            NotFoundError: unknown booking
            AlreadyPaid / AlreadyCancelled: booking is not payable
            InvalidPrice: stored price outside processor bounds
            DependencyError / DependencyTimeout: processor failure
        """
        booking = await self.booking_service.get(booking_id)
        assert_payable(booking)
        assert_price_in_bounds(booking.price_cents, self.settings)

        previous_intent_id = booking.payment_intent_id
        if previous_intent_id:
            try:
                existing = await self.gateway.retrieve_intent(previous_intent_id)
            except (DependencyError, DependencyTimeout) as e:
                logger.warning(
                    "Could not retrieve intent %s for booking %s (%s); issuing a new one",
                    previous_intent_id,
                    booking.id,
                    e.detail,
                )
                existing = None

            if existing is not None and not existing.is_terminal and existing.client_secret:
                logger.info("Reusing intent %s for booking %s", existing.id, booking.id)
                return PaymentIntentResponse(
                    client_secret=existing.client_secret,
                    payment_intent_id=existing.id,
                    reused=True,
                )

        intent = await self.gateway.create_intent(
            amount=booking.price_cents,
            currency=booking.currency,
            metadata={
                "bookingId": booking.id,
                "customerEmail": booking.customer_email,
                "environment": self.settings.environment,
            },
            idempotency_key=intent_idempotency_key(booking.id, previous_intent_id),
        )
        await self.booking_service.attach_payment_intent(booking.id, intent.id)
        logger.info(
            "Issued %s intent %s for booking %s (%s %s)",
            self.gateway.gateway_type.value,
            intent.id,
            booking.id,
            booking.price_cents,
            booking.currency,
        )
        return PaymentIntentResponse(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
        )

    def verify(self, raw: RawWebhook) -> VerifiedEvent:
        """Authenticate a webhook and parse it into an event.

        Raises:
            WebhookSignatureError: missing or bad signature, or unusable payload
            PaymentsNotConfigured: no webhook secret to verify against
        """
        if not raw.signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        event = self.gateway.verify_webhook(raw.payload, raw.signature)

        try:
            return VerifiedEvent(
                id=str(event["id"]),
                type=str(event["type"]),
                data=dict(event.get("data", {}).get("object") or {}),
            )
        except (KeyError, TypeError, AttributeError, ValueError):
            raise WebhookSignatureError("Invalid payload")

    async def reconcile(self, event: VerifiedEvent) -> WebhookAck:
        """Apply a verified event. Replays are acknowledged without side effects."""
        if not isinstance(event, VerifiedEvent):
            raise TypeError("reconcile() only accepts events returned by verify()")

        if await self.events.seen(event.id):
            logger.info("Webhook event %s already processed", event.id)
            return WebhookAck(outcome=OUTCOME_DUPLICATE, duplicate=True)

        booking_id = event.booking_id
        if event.type == EVENT_PAYMENT_SUCCEEDED:
            outcome = await self._apply_success(event)
        elif event.type == EVENT_PAYMENT_FAILED:
            logger.info(
                "Payment failed for booking %s (intent %s)",
                booking_id,
                event.payment_intent_id,
            )
            outcome = OUTCOME_PAYMENT_FAILED
        else:
            logger.debug("Ignoring webhook event type %s", event.type)
            outcome = OUTCOME_IGNORED

        await self.events.record(event.id, event.type, booking_id, outcome, now=self.clock())
        return WebhookAck(outcome=outcome)

    async def _apply_success(self, event: VerifiedEvent) -> str:
        booking_id = event.booking_id
        if not booking_id:
            logger.warning("Event %s has no bookingId metadata; ignoring", event.id)
            return OUTCOME_IGNORED

        outcome = await self.booking_service.confirm_payment(booking_id)
        if outcome == PaymentOutcome.BOOKING_CANCELLED:
            logger.warning(
                "Payment %s succeeded for cancelled booking %s; needs refund follow-up",
                event.payment_intent_id,
                booking_id,
            )
        elif outcome == PaymentOutcome.BOOKING_MISSING:
            logger.warning(
                "Payment %s succeeded for unknown booking %s",
                event.payment_intent_id,
                booking_id,
            )
        return outcome

    async def acknowledge_best_effort(self, event: VerifiedEvent) -> WebhookAck:
        """Reconcile, but acknowledge receipt even if applying the event fails.

        The failure is logged with its traceback and any partial writes are
        rolled back.
        """
        try:
            return await self.reconcile(event)
        except Exception:
            logger.exception("Failed to apply webhook event %s (%s)", event.id, event.type)
            if self._rollback is not None:
                await self._rollback()
            return WebhookAck(warning=HANDLER_ERROR_WARNING)
