"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
Adapters raise DependencyError / DependencyTimeout when the processor fails
and WebhookSignatureError when an inbound event cannot be authenticated.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    STRIPE = "stripe"
    SIMULATED = "simulated"


# Intent statuses after which the intent can no longer be paid
TERMINAL_INTENT_STATUSES = frozenset({"succeeded", "canceled"})


@dataclass
class IntentResult:
    """A payment intent as reported by the processor."""

    id: str
    client_secret: str | None
    status: str
    amount: int | None = None
    currency: str | None = None
    raw_response: dict | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_INTENT_STATUSES


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> IntentResult:
        """Create a payment intent.

        Args:
            amount: Amount in smallest currency unit
            currency: ISO currency code
            metadata: Attached to the intent and echoed back in webhook events
            idempotency_key: Same key, same intent

        Returns:
            IntentResult with the client secret
        """
        pass

    @abstractmethod
    async def retrieve_intent(self, intent_id: str) -> IntentResult:
        """Fetch the current state of an existing intent."""
        pass

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> dict:
        """Verify webhook signature and parse payload.

        Args:
            payload: Raw request body, exactly as received
            signature: Webhook signature header

        Returns:
            Parsed event dict
        """
        pass
