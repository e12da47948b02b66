"""Payment request and provider result models.

Amounts on requests and results are display units (Decimal). Amounts on
CheckoutSession are the provider's smallest currency unit (int).
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import ApplicationStatus, CheckoutPaymentStatus, CheckoutSessionStatus


class CardDetails(BaseModel):
    """Raw card payload for the direct charge path."""

    model_config = ConfigDict(frozen=True)

    # Excluded from repr so card data never reaches a log line
    number: str = Field(..., min_length=1, repr=False)
    exp_month: int = Field(..., ge=1, le=12)
    exp_year: int = Field(..., ge=2000)
    cvc: str = Field(..., min_length=3, max_length=4, repr=False)

    @field_validator("number")
    @classmethod
    def _strip_whitespace(cls, value: str) -> str:
        return "".join(value.split())


class PaymentRequest(BaseModel):
    """Ephemeral per-call payment request; never persisted."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., gt=0, description="Amount in display units")
    currency: str = Field(..., min_length=3, max_length=10)
    card: CardDetails | None = None
    success_url: str | None = None
    cancel_url: str | None = None

    @field_validator("currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.strip().lower()


class ChargeResult(BaseModel):
    """Success variant of a direct charge or intent creation."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    intent_id: str
    status: str = Field(..., description="PaymentIntent status (succeeded, requires_action, ...)")
    amount: Decimal = Field(..., description="Amount in display units")
    currency: str
    client_secret: str | None = None
    payment_method_id: str | None = None


class CheckoutResult(BaseModel):
    """Success variant of checkout session creation."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    checkout_url: str
    session_id: str
    amount: Decimal
    currency: str


class CheckoutSession(BaseModel):
    """Read-only view of a provider-owned Stripe Checkout Session."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    status: CheckoutSessionStatus | None = None
    payment_status: CheckoutPaymentStatus
    amount_total: int = Field(default=0, ge=0, description="Smallest currency unit")
    currency: str
    payment_intent_id: str | None = None
    customer_email: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == CheckoutPaymentStatus.PAID


class PaymentStatusResult(BaseModel):
    """Result of the polling status check."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    session_id: str
    payment_status: CheckoutPaymentStatus
    payment_intent_id: str | None = None
    amount: Decimal
    currency: str
    customer_email: str | None = None
    application_status: ApplicationStatus | None = None
