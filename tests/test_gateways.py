import json
import time

import pytest
import stripe

from flupp.config import Settings
from flupp.core.exceptions import (
    DependencyError,
    DependencyTimeout,
    PaymentsNotConfigured,
    WebhookSignatureError,
)
from flupp.gateways.simulated import SimulatedGateway, sign_payload
from flupp.gateways.stripe_gateway import StripeGateway
from flupp.services.gateway_service import GatewayService

SECRET = "whsec_test_secret"

EVENT = json.dumps(
    {
        "id": "evt_1",
        "object": "event",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_1", "object": "payment_intent", "metadata": {"bookingId": "b1"}}},
    }
).encode()


@pytest.fixture
def stripe_gateway():
    return StripeGateway(secret_key="sk_test_123", webhook_secret=SECRET, timeout=0.05)


async def test_stripe_timeout_maps_to_dependency_timeout(stripe_gateway, monkeypatch):
    def slow_create(**kwargs):
        time.sleep(0.5)

    monkeypatch.setattr(stripe.PaymentIntent, "create", slow_create)

    with pytest.raises(DependencyTimeout) as exc_info:
        await stripe_gateway.create_intent(4500, "GBP", {"bookingId": "b1"})
    assert exc_info.value.status_code == 504


async def test_stripe_error_maps_to_dependency_error(stripe_gateway, monkeypatch):
    def failing_create(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.PaymentIntent, "create", failing_create)

    with pytest.raises(DependencyError) as exc_info:
        await stripe_gateway.create_intent(4500, "GBP", {"bookingId": "b1"})
    assert exc_info.value.status_code == 502
    assert "network down" in exc_info.value.detail


async def test_stripe_create_intent_passes_key_and_idempotency(stripe_gateway, monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return stripe.PaymentIntent.construct_from(
            {
                "id": "pi_1",
                "client_secret": "pi_1_secret",
                "status": "requires_payment_method",
                "amount": kwargs["amount"],
                "currency": kwargs["currency"],
            },
            "sk_test_123",
        )

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)

    intent = await stripe_gateway.create_intent(
        4500, "GBP", {"bookingId": "b1"}, idempotency_key="booking-b1-after-none"
    )

    assert intent.id == "pi_1"
    assert intent.client_secret == "pi_1_secret"
    assert calls[0]["currency"] == "gbp"
    assert calls[0]["api_key"] == "sk_test_123"
    assert calls[0]["idempotency_key"] == "booking-b1-after-none"


def test_stripe_webhook_verification(stripe_gateway):
    assert stripe_gateway.verify_webhook(EVENT, sign_payload(EVENT, SECRET))["id"] == "evt_1"

    with pytest.raises(WebhookSignatureError):
        stripe_gateway.verify_webhook(EVENT, sign_payload(EVENT, "whsec_wrong"))
    with pytest.raises(WebhookSignatureError):
        stripe_gateway.verify_webhook(EVENT, "garbage")


def test_stripe_webhook_without_secret(stripe_gateway):
    stripe_gateway.webhook_secret = ""

    with pytest.raises(PaymentsNotConfigured):
        stripe_gateway.verify_webhook(EVENT, sign_payload(EVENT, SECRET))


def test_simulated_webhook_rejects_stale_signature():
    gateway = SimulatedGateway(webhook_secret=SECRET)
    stale = sign_payload(EVENT, SECRET, timestamp=int(time.time()) - 600)

    with pytest.raises(WebhookSignatureError):
        gateway.verify_webhook(EVENT, stale)
    assert gateway.verify_webhook(EVENT, sign_payload(EVENT, SECRET))["type"] == "payment_intent.succeeded"


def test_simulated_webhook_rejects_non_json_payload():
    gateway = SimulatedGateway(webhook_secret=SECRET)
    payload = b"not json"

    with pytest.raises(WebhookSignatureError, match="Invalid payload"):
        gateway.verify_webhook(payload, sign_payload(payload, SECRET))


def test_gateway_selection():
    dev = GatewayService(Settings(_env_file=None, stripe_secret_key=None))
    assert isinstance(dev.get_gateway(), SimulatedGateway)

    live = GatewayService(Settings(_env_file=None, stripe_secret_key="sk_test_123"))
    assert isinstance(live.get_gateway(), StripeGateway)


def test_production_without_stripe_key_is_refused():
    service = GatewayService(
        Settings(_env_file=None, environment="production", stripe_secret_key=None)
    )

    with pytest.raises(PaymentsNotConfigured):
        service.get_gateway()
