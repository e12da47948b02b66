"""Application payment record: the payment-relevant subset of an application."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import ApplicationStatus


class ApplicationPaymentRecord(BaseModel):
    """Payment state stored on a visa application.

    stripe_session_id is set once when checkout is created and is the only
    join key between a webhook and the application.
    """

    model_config = ConfigDict(frozen=True)

    application_id: str = Field(..., description="Application identifier")
    stripe_session_id: str | None = Field(
        default=None,
        description="Stripe Checkout Session ID (cs_xxx)",
        examples=["cs_test_a1b2c3"],
    )
    status: ApplicationStatus = Field(
        default=ApplicationStatus.SUBMITTED,
        description="Payment status of the application",
    )
    amount: Decimal | None = Field(
        default=None, ge=0, description="Amount in display units"
    )
    currency: str | None = Field(
        default=None, max_length=10, description="ISO currency code"
    )
    updated_at: datetime | None = Field(default=None, description="Last status change")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class StatusUpdate(BaseModel):
    """Outcome of a guarded status transition."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    requested: ApplicationStatus
    applied: bool = Field(..., description="True if the record changed")
    record: ApplicationPaymentRecord | None = Field(
        default=None, description="Record after the attempt, None if absent"
    )
