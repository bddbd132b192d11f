"""Payment-related Pydantic schemas."""

from pydantic import Field

from flupp.schemas.base import CamelModel


class PaymentIntentCreate(CamelModel):
    """Schema for requesting a payment intent."""

    booking_id: str = Field(..., min_length=1, max_length=50)


class PaymentIntentResponse(CamelModel):
    """Client secret for the card form."""

    client_secret: str
    payment_intent_id: str
    reused: bool = False


class WebhookAck(CamelModel):
    """Acknowledgement returned to the payment processor."""

    received: bool = True
    outcome: str | None = None
    duplicate: bool = False
    warning: str | None = None
