import json

import pytest

from flupp.core.exceptions import (
    AlreadyCancelled,
    AlreadyPaid,
    DependencyTimeout,
    InvalidPrice,
    NotFoundError,
    WebhookSignatureError,
)
from flupp.gateways.simulated import SimulatedGateway, sign_payload
from flupp.services.payment_service import (
    PaymentService,
    RawWebhook,
    VerifiedEvent,
    intent_idempotency_key,
)


def signed(payload: bytes, secret: str = "whsec_test_secret") -> RawWebhook:
    return RawWebhook(payload=payload, signature=sign_payload(payload, secret))


async def test_create_intent_attaches_to_booking(payment_service, booking_service, gateway, make_booking):
    booking = await booking_service.create(make_booking())

    result = await payment_service.create_intent(booking.id)

    assert result.client_secret
    assert result.payment_intent_id.startswith("pi_sim_")
    assert result.reused is False
    assert (await booking_service.get(booking.id)).payment_intent_id == result.payment_intent_id

    intent = gateway.intents[result.payment_intent_id]
    assert intent.amount == 4500
    assert intent.currency == "gbp"
    assert intent.raw_response["metadata"] == {
        "bookingId": booking.id,
        "customerEmail": "owner@flupp.co.uk",
        "environment": "development",
    }


async def test_live_intent_is_reused(payment_service, booking_service, gateway, make_booking):
    booking = await booking_service.create(make_booking())
    first = await payment_service.create_intent(booking.id)

    second = await payment_service.create_intent(booking.id)

    assert second.reused is True
    assert second.payment_intent_id == first.payment_intent_id
    assert second.client_secret == first.client_secret
    assert len(gateway.intents) == 1


async def test_terminal_intent_is_replaced(payment_service, booking_service, gateway, make_booking):
    booking = await booking_service.create(make_booking())
    first = await payment_service.create_intent(booking.id)
    gateway.set_status(first.payment_intent_id, "canceled")

    second = await payment_service.create_intent(booking.id)

    assert second.reused is False
    assert second.payment_intent_id != first.payment_intent_id
    assert (await booking_service.get(booking.id)).payment_intent_id == second.payment_intent_id


async def test_unretrievable_intent_is_replaced(payment_service, booking_service, booking_repo, make_booking):
    booking = await booking_service.create(make_booking())
    booking_repo.bookings[booking.id].payment_intent_id = "pi_lost"

    result = await payment_service.create_intent(booking.id)

    assert result.reused is False
    assert result.payment_intent_id != "pi_lost"


def test_idempotency_key_changes_with_previous_intent():
    assert intent_idempotency_key("b1", None) == "booking-b1-after-none"
    assert intent_idempotency_key("b1", "pi_1") == "booking-b1-after-pi_1"


async def test_create_intent_for_unknown_booking(payment_service):
    with pytest.raises(NotFoundError):
        await payment_service.create_intent("missing")


async def test_create_intent_for_paid_booking(payment_service, booking_service, make_booking):
    booking = await booking_service.create(make_booking())
    await booking_service.confirm_payment(booking.id)

    with pytest.raises(AlreadyPaid):
        await payment_service.create_intent(booking.id)


async def test_create_intent_for_cancelled_booking(payment_service, booking_service, make_booking):
    booking = await booking_service.create(make_booking())
    await booking_service.update_status(booking.id, "cancelled")

    with pytest.raises(AlreadyCancelled):
        await payment_service.create_intent(booking.id)


async def test_price_is_rechecked(payment_service, booking_service, booking_repo, make_booking):
    booking = await booking_service.create(make_booking())
    booking_repo.bookings[booking.id].price_cents = 10

    with pytest.raises(InvalidPrice):
        await payment_service.create_intent(booking.id)


async def test_price_is_rechecked_before_reusing_intent(
    payment_service, booking_service, booking_repo, make_booking
):
    booking = await booking_service.create(make_booking())
    await payment_service.create_intent(booking.id)
    booking_repo.bookings[booking.id].price_cents = 10

    with pytest.raises(InvalidPrice):
        await payment_service.create_intent(booking.id)


class SlowGateway(SimulatedGateway):
    async def create_intent(self, amount, currency, metadata, idempotency_key=None):
        raise DependencyTimeout("stripe", 10.0)


async def test_processor_timeout_surfaces(booking_service, event_repo, clock, test_settings, make_booking):
    service = PaymentService(
        booking_service, event_repo, SlowGateway("whsec_test_secret"), clock=clock, settings=test_settings
    )
    booking = await booking_service.create(make_booking())

    with pytest.raises(DependencyTimeout) as exc_info:
        await service.create_intent(booking.id)
    assert exc_info.value.status_code == 504
    assert (await booking_service.get(booking.id)).payment_intent_id is None


async def test_successful_payment_confirms_booking(payment_service, booking_service, gateway, make_booking):
    booking = await booking_service.create(make_booking())
    intent = await payment_service.create_intent(booking.id)
    payload = gateway.build_event(intent.payment_intent_id, event_id="evt_1")

    event = payment_service.verify(signed(payload))
    ack = await payment_service.reconcile(event)

    assert event.booking_id == booking.id
    assert ack.received is True
    assert ack.outcome == "confirmed"
    assert (await booking_service.get(booking.id)).status == "confirmed"


async def test_replayed_event_has_no_effect(payment_service, booking_service, event_repo, gateway, make_booking):
    booking = await booking_service.create(make_booking())
    intent = await payment_service.create_intent(booking.id)
    payload = gateway.build_event(intent.payment_intent_id, event_id="evt_1")

    await payment_service.reconcile(payment_service.verify(signed(payload)))
    await booking_service.update_status(booking.id, "in_progress")
    replay = await payment_service.reconcile(payment_service.verify(signed(payload)))

    assert replay.duplicate is True
    assert (await booking_service.get(booking.id)).status == "in_progress"
    assert event_repo.events["evt_1"]["outcome"] == "confirmed"


async def test_second_success_event_is_already_paid(payment_service, booking_service, gateway, make_booking):
    booking = await booking_service.create(make_booking())
    intent = await payment_service.create_intent(booking.id)

    for event_id, expected in (("evt_a", "confirmed"), ("evt_b", "already_paid")):
        payload = gateway.build_event(intent.payment_intent_id, event_id=event_id)
        ack = await payment_service.reconcile(payment_service.verify(signed(payload)))
        assert ack.outcome == expected
    assert (await booking_service.get(booking.id)).status == "confirmed"


async def test_payment_for_cancelled_booking_is_acknowledged(payment_service, booking_service, gateway, make_booking):
    booking = await booking_service.create(make_booking())
    intent = await payment_service.create_intent(booking.id)
    await booking_service.update_status(booking.id, "cancelled")
    payload = gateway.build_event(intent.payment_intent_id)

    ack = await payment_service.reconcile(payment_service.verify(signed(payload)))

    assert ack.outcome == "booking_cancelled"
    assert (await booking_service.get(booking.id)).status == "cancelled"


async def test_failed_payment_leaves_booking_pending(payment_service, booking_service, gateway, make_booking):
    booking = await booking_service.create(make_booking())
    intent = await payment_service.create_intent(booking.id)
    payload = gateway.build_event(intent.payment_intent_id, event_type="payment_intent.payment_failed")

    ack = await payment_service.reconcile(payment_service.verify(signed(payload)))

    assert ack.outcome == "payment_failed"
    assert (await booking_service.get(booking.id)).status == "pending_payment"


async def test_other_event_types_are_ignored(payment_service):
    payload = json.dumps({"id": "evt_x", "type": "charge.refunded", "data": {"object": {}}}).encode()

    ack = await payment_service.reconcile(payment_service.verify(signed(payload)))

    assert ack.outcome == "ignored"


async def test_bad_signature_is_rejected(payment_service, gateway, booking_service, make_booking):
    booking = await booking_service.create(make_booking())
    intent = await payment_service.create_intent(booking.id)
    payload = gateway.build_event(intent.payment_intent_id)

    with pytest.raises(WebhookSignatureError):
        payment_service.verify(signed(payload, secret="whsec_wrong"))
    with pytest.raises(WebhookSignatureError):
        payment_service.verify(RawWebhook(payload=payload, signature=None))
    with pytest.raises(WebhookSignatureError):
        payment_service.verify(RawWebhook(payload=payload, signature="garbage"))
    assert (await booking_service.get(booking.id)).status == "pending_payment"


async def test_tampered_payload_is_rejected(payment_service):
    payload = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded"}).encode()
    raw = signed(payload)

    with pytest.raises(WebhookSignatureError):
        payment_service.verify(RawWebhook(payload=payload + b" ", signature=raw.signature))


async def test_reconcile_only_accepts_verified_events(payment_service):
    with pytest.raises(TypeError):
        await payment_service.reconcile({"id": "evt_1", "type": "payment_intent.succeeded"})


class ExplodingBookingService:
    async def confirm_payment(self, booking_id):
        raise RuntimeError("database went away")


async def test_best_effort_acknowledges_handler_errors(event_repo, gateway, clock, test_settings):
    rollbacks = []

    async def rollback():
        rollbacks.append(True)

    service = PaymentService(
        ExplodingBookingService(),
        event_repo,
        gateway,
        clock=clock,
        settings=test_settings,
        rollback=rollback,
    )
    event = VerifiedEvent(
        id="evt_boom",
        type="payment_intent.succeeded",
        data={"id": "pi_1", "metadata": {"bookingId": "b1"}},
    )

    ack = await service.acknowledge_best_effort(event)

    assert ack.received is True
    assert ack.warning == "handler-error"
    assert rollbacks == [True]
    assert "evt_boom" not in event_repo.events
