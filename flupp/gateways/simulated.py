"""Simulated payment gateway for local development and tests.

Intents live in process memory. Webhook signatures use Stripe's header format
(``t=<unix ts>,v1=<hex HMAC-SHA256 of "<ts>.<payload>">``) and are checked
with the Stripe SDK, so the same tooling works against both gateways.
"""

import hashlib
import hmac
import json
import time
import uuid

import stripe

from flupp.config import settings
from flupp.core.exceptions import DependencyError, WebhookSignatureError
from flupp.gateways.base import GatewayType, IntentResult, PaymentGateway

SIGNATURE_TOLERANCE_SECONDS = 300


def sign_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a signature header for ``payload``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class SimulatedGateway(PaymentGateway):
    """In-memory stand-in for the card processor."""

    def __init__(self, webhook_secret: str | None = None):
        self.webhook_secret = webhook_secret or settings.simulated_webhook_secret
        self.intents: dict[str, IntentResult] = {}
        self._by_idempotency_key: dict[str, str] = {}

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.SIMULATED

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> IntentResult:
        """Create simulated intent (always succeeds)."""
        if idempotency_key and idempotency_key in self._by_idempotency_key:
            return self.intents[self._by_idempotency_key[idempotency_key]]

        intent_id = f"pi_sim_{uuid.uuid4().hex[:24]}"
        intent = IntentResult(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            status="requires_payment_method",
            amount=amount,
            currency=currency.lower(),
            raw_response={"metadata": dict(metadata)},
        )
        self.intents[intent_id] = intent
        if idempotency_key:
            self._by_idempotency_key[idempotency_key] = intent_id
        return intent

    async def retrieve_intent(self, intent_id: str) -> IntentResult:
        intent = self.intents.get(intent_id)
        if intent is None:
            raise DependencyError("simulated", f"No such payment intent: {intent_id}")
        return intent

    def set_status(self, intent_id: str, status: str) -> None:
        self.intents[intent_id].status = status

    def build_event(
        self,
        intent_id: str,
        event_type: str = "payment_intent.succeeded",
        event_id: str | None = None,
    ) -> bytes:
        """Serialized event for an intent, as the processor would POST it."""
        intent = self.intents[intent_id]
        if event_type == "payment_intent.succeeded":
            intent.status = "succeeded"
        event = {
            "id": event_id or f"evt_sim_{uuid.uuid4().hex[:24]}",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": intent.id,
                    "object": "payment_intent",
                    "amount": intent.amount,
                    "currency": intent.currency,
                    "status": intent.status,
                    "metadata": (intent.raw_response or {}).get("metadata", {}),
                }
            },
        }
        return json.dumps(event).encode()

    def verify_webhook(self, payload: bytes, signature: str) -> dict:
        """Verify signature with the simulated secret."""
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self.webhook_secret,
                tolerance=SIGNATURE_TOLERANCE_SECONDS,
            )
            return json.loads(payload)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Webhook signature verification failed: {e}")
        except ValueError:
            raise WebhookSignatureError("Invalid payload")
