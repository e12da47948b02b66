"""API models for payment endpoints.

Request bodies accept both snake_case and the camelCase names used by the
existing web client (cardNumber, expMonth, successUrl, ...).
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from intake.models.enums import ProcessingResult
from intake.models.payment import CheckoutResult


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessPaymentRequest(_RequestModel):
    """Direct card charge request."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "amount": 20,
                    "cardNumber": "4242424242424242",
                    "expMonth": "12",
                    "expYear": "2030",
                    "cvc": "123",
                    "currency": "aed",
                }
            ]
        },
    )

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Payment amount (minimum 2 AED, 0.50 for USD/EUR)",
        examples=[20],
    )
    card_number: str = Field(..., min_length=12, description="Card number", repr=False)
    exp_month: int | str = Field(..., description="Expiration month (1-12)", examples=["12"])
    exp_year: int | str = Field(..., description="Expiration year (YYYY)", examples=["2030"])
    cvc: str = Field(..., min_length=3, max_length=4, description="Card CVC/CVV", repr=False)
    currency: str | None = Field(
        default=None, description="Currency code (default: base currency)", examples=["aed"]
    )


class CreateIntentRequest(_RequestModel):
    """Tokenized payment intent request."""

    amount: Decimal = Field(..., gt=0, examples=[20])
    currency: str | None = Field(default=None, examples=["aed"])


class CreateCheckoutRequest(_RequestModel):
    """Checkout session request."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "amount": 20,
                    "currency": "aed",
                    "applicationId": "APP-2026-0001",
                    "successUrl": "https://example.com/success?session_id={CHECKOUT_SESSION_ID}",
                    "cancelUrl": "https://example.com/cancel",
                }
            ]
        },
    )

    amount: Decimal = Field(..., gt=0, examples=[20])
    currency: str | None = Field(default=None, examples=["aed"])
    application_id: str | None = Field(
        default=None,
        description="Application to attach the session to",
    )
    success_url: str | None = Field(default=None, description="URL after successful payment")
    cancel_url: str | None = Field(default=None, description="URL after cancelled payment")


class CheckoutResponse(CheckoutResult):
    """Checkout session plus a hint for the client."""

    message: str = "Click on checkout_url to open Stripe payment page"


class WebhookResponse(BaseModel):
    """Acknowledgement returned to Stripe."""

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processing_result: ProcessingResult | None = None
