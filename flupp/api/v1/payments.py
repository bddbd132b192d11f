"""Payment endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status

from flupp.api.deps import get_payment_service
from flupp.schemas.payment import PaymentIntentCreate, PaymentIntentResponse, WebhookAck
from flupp.services.payment_service import PaymentService, RawWebhook

router = APIRouter()

Payments = Annotated[PaymentService, Depends(get_payment_service)]


@router.post("/create-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    intent_data: PaymentIntentCreate,
    payments: Payments,
) -> PaymentIntentResponse:
    """Issue a payment intent for an unpaid booking, reusing a live one."""
    return await payments.create_intent(intent_data.booking_id)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def payment_webhook(
    request: Request,
    payments: Payments,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> WebhookAck:
    """Receive processor events.

    400 when the signature does not verify. Anything that goes wrong after
    verification is logged and still acknowledged.
    """
    # Signature covers the raw bytes, so read the body before any parsing
    payload = await request.body()
    event = payments.verify(RawWebhook(payload=payload, signature=stripe_signature))
    return await payments.acknowledge_best_effort(event)
