"""Stripe payment gateway adapter."""

import asyncio
import json
import logging
from typing import Any, Callable

import stripe

from flupp.config import settings
from flupp.core.exceptions import (
    DependencyError,
    DependencyTimeout,
    PaymentsNotConfigured,
    WebhookSignatureError,
)
from flupp.gateways.base import GatewayType, IntentResult, PaymentGateway

logger = logging.getLogger(__name__)


def _intent_result(intent: Any) -> IntentResult:
    return IntentResult(
        id=intent.id,
        client_secret=intent.client_secret,
        status=intent.status,
        amount=intent.amount,
        currency=intent.currency,
        raw_response={"id": intent.id, "status": intent.status},
    )


class StripeGateway(PaymentGateway):
    """Stripe payment gateway implementation.

    The Stripe SDK is synchronous; calls run in a worker thread and are
    bounded by ``stripe_timeout_seconds``.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
        timeout: float | None = None,
    ):
        self.secret_key = secret_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.timeout = timeout or settings.stripe_timeout_seconds
        self.api_version = settings.stripe_api_version

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.STRIPE

    async def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if not self.secret_key:
            raise PaymentsNotConfigured()
        kwargs.setdefault("api_key", self.secret_key)
        kwargs.setdefault("stripe_version", self.api_version)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Stripe call %s timed out after %ss", fn.__qualname__, self.timeout)
            raise DependencyTimeout("stripe", self.timeout)
        except stripe.StripeError as e:
            logger.warning("Stripe call %s failed: %s", fn.__qualname__, e)
            raise DependencyError("stripe", e.user_message or str(e)) from e

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> IntentResult:
        """Create Stripe PaymentIntent."""
        options: dict[str, Any] = {}
        if idempotency_key:
            options["idempotency_key"] = idempotency_key
        intent = await self._call(
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency.lower(),
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            **options,
        )
        return _intent_result(intent)

    async def retrieve_intent(self, intent_id: str) -> IntentResult:
        """Retrieve Stripe PaymentIntent."""
        intent = await self._call(stripe.PaymentIntent.retrieve, intent_id)
        return _intent_result(intent)

    def verify_webhook(self, payload: bytes, signature: str) -> dict:
        """Verify Stripe webhook signature."""
        if not self.webhook_secret:
            raise PaymentsNotConfigured("Stripe webhook secret is not configured")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError:
            raise WebhookSignatureError("Invalid payload")
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Webhook signature verification failed: {e}")

        # The signature covers these exact bytes
        return json.loads(payload)
