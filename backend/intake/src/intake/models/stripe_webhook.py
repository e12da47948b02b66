"""Stripe webhook event models.

Inbound events are parsed into a union keyed by the event type string.
Types the reconciler does not act on become UnhandledEvent, which is
acknowledged and otherwise ignored.
"""

from datetime import datetime
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .enums import WebhookEventType
from .errors import PayloadParseFailed


class CheckoutSessionObject(BaseModel):
    """The data.object of a checkout.session.* event (fields we read)."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Checkout Session ID (cs_xxx)")
    payment_status: str | None = None
    status: str | None = None
    amount_total: int | None = None
    currency: str | None = None
    payment_intent: str | None = None
    customer_email: str | None = None


class CheckoutSessionEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: CheckoutSessionObject


class _BaseEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, description="Stripe event ID (evt_xxx)")
    created: int | None = None


class CheckoutSessionCompleted(_BaseEvent):
    type: Literal["checkout.session.completed"]
    data: CheckoutSessionEventData

    @property
    def session_id(self) -> str:
        return self.data.object.id


class CheckoutSessionAsyncPaymentFailed(_BaseEvent):
    type: Literal["checkout.session.async_payment_failed"]
    data: CheckoutSessionEventData

    @property
    def session_id(self) -> str:
        return self.data.object.id


class CheckoutSessionExpired(_BaseEvent):
    type: Literal["checkout.session.expired"]
    data: CheckoutSessionEventData

    @property
    def session_id(self) -> str:
        return self.data.object.id


class UnhandledEvent(_BaseEvent):
    """Any event type without a dedicated variant."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def session_id(self) -> str | None:
        obj = self.data.get("object")
        if isinstance(obj, dict) and isinstance(obj.get("id"), str):
            return obj["id"]
        return None


WebhookEvent = Union[
    CheckoutSessionCompleted,
    CheckoutSessionAsyncPaymentFailed,
    CheckoutSessionExpired,
    UnhandledEvent,
]

_EVENT_VARIANTS: dict[str, type[BaseModel]] = {
    WebhookEventType.CHECKOUT_SESSION_COMPLETED.value: CheckoutSessionCompleted,
    WebhookEventType.CHECKOUT_SESSION_ASYNC_PAYMENT_FAILED.value: CheckoutSessionAsyncPaymentFailed,
    WebhookEventType.CHECKOUT_SESSION_EXPIRED.value: CheckoutSessionExpired,
}


def parse_webhook_event(payload: Any) -> WebhookEvent:
    """Parse a decoded Stripe event into its variant.

    Args:
        payload: Decoded event JSON

    Returns:
        The matching event variant, or UnhandledEvent for other types.

    Raises:
        PayloadParseFailed: If the payload has no type or a handled type
            is missing its checkout session object.
    """
    if not isinstance(payload, dict):
        raise PayloadParseFailed("Event payload must be a JSON object")

    event_type = payload.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise PayloadParseFailed("Event payload has no type")

    variant = _EVENT_VARIANTS.get(event_type, UnhandledEvent)
    try:
        return variant.model_validate(payload)  # type: ignore[return-value]
    except ValidationError as e:
        raise PayloadParseFailed(f"Malformed {event_type} event: {e.error_count()} error(s)") from e


class StripeWebhookEvent(BaseModel):
    """Log of a received Stripe webhook event.

    Used for:
    - Idempotency: short-circuit redelivery of the same event
    - Auditing: track all webhook deliveries
    """

    model_config = ConfigDict(strict=True)

    event_id: str = Field(
        ...,
        description="Stripe event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Stripe event type",
        examples=["checkout.session.completed"],
    )
    processed_at: datetime = Field(..., description="When the event was processed")
    payload_hash: str = Field(..., description="SHA-256 hash of payload")
    session_id: str | None = Field(
        default=None,
        description="Checkout session ID referenced by the event",
    )
    processing_result: str = Field(
        default="success",
        description="Result of processing: success, unchanged, skipped, not_found",
    )
    error_message: str | None = Field(default=None)
