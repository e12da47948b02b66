"""Standard error codes for the payment core.

Gateways return a PaymentFailure instead of raising, so every caller has to
look at the error kind. PaymentError wraps a PaymentFailure for the HTTP
edge, where FastAPI exception handlers turn it into a response.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Payment error taxonomy."""

    VALIDATION_ERROR = "ERR_PAY_001"
    CARD_DECLINED = "ERR_PAY_002"
    PROVIDER_REJECTED = "ERR_PAY_003"
    SESSION_CREATION_FAILED = "ERR_PAY_004"
    UNKNOWN_PROVIDER_ERROR = "ERR_PAY_005"
    SIGNATURE_VERIFICATION_FAILED = "ERR_PAY_006"
    PAYLOAD_PARSE_FAILED = "ERR_PAY_007"
    RECORD_NOT_FOUND = "ERR_PAY_008"
    SESSION_ID_REQUIRED = "ERR_PAY_009"
    SESSION_ALREADY_ATTACHED = "ERR_PAY_010"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Amount is below the minimum required for this currency",
    ErrorCode.CARD_DECLINED: "The card was declined",
    ErrorCode.PROVIDER_REJECTED: "The payment provider rejected the request",
    ErrorCode.SESSION_CREATION_FAILED: "Checkout session creation failed",
    ErrorCode.UNKNOWN_PROVIDER_ERROR: "Payment processing failed",
    ErrorCode.SIGNATURE_VERIFICATION_FAILED: "Invalid webhook signature",
    ErrorCode.PAYLOAD_PARSE_FAILED: "Webhook payload could not be parsed",
    ErrorCode.RECORD_NOT_FOUND: "No application found for this checkout session",
    ErrorCode.SESSION_ID_REQUIRED: "Session ID is required",
    ErrorCode.SESSION_ALREADY_ATTACHED: "Application already has a checkout session",
}

# Recovery suggestions for callers
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Increase the amount to at least the currency minimum",
    ErrorCode.CARD_DECLINED: "Try a different card or contact the card issuer",
    ErrorCode.PROVIDER_REJECTED: (
        "Enable 'Raw card data APIs' in the Stripe Dashboard under Settings > APIs, "
        "or collect card details with Stripe.js and create a payment intent instead"
    ),
    ErrorCode.SESSION_CREATION_FAILED: "Try again; no payment has been taken",
    ErrorCode.UNKNOWN_PROVIDER_ERROR: (
        "Check the payment status before retrying to avoid a duplicate charge"
    ),
    ErrorCode.SIGNATURE_VERIFICATION_FAILED: "Verify webhook secret configuration",
    ErrorCode.PAYLOAD_PARSE_FAILED: "Send a valid Stripe event JSON body",
    ErrorCode.RECORD_NOT_FOUND: "Verify the session ID belongs to an application",
    ErrorCode.SESSION_ID_REQUIRED: "Pass session_id as a query parameter",
    ErrorCode.SESSION_ALREADY_ATTACHED: "Use the existing checkout session for this application",
}


class PaymentFailure(BaseModel):
    """Error variant of a gateway result.

    Carries enough context (amount, currency, provider message) to render
    a useful user message.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        message: Optional[str] = None,
        *,
        recovery: Optional[str] = None,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        details: Optional[dict[str, str]] = None,
    ) -> "PaymentFailure":
        """Create a PaymentFailure from an error code.

        Args:
            code: The error code
            message: Override for the default message (e.g. provider text)
            recovery: Override for the default recovery hint
            amount: Attempted amount, recorded in details
            currency: Attempted currency, recorded in details
            details: Optional additional context about the error

        Returns:
            A PaymentFailure with the message and recovery hint for the code.
        """
        merged: dict[str, str] = dict(details or {})
        if amount is not None:
            merged["amount"] = str(amount)
        if currency is not None:
            merged["currency"] = currency.upper()
        return cls(
            error_code=code,
            message=message or ERROR_MESSAGES[code],
            recovery=recovery or ERROR_RECOVERY[code],
            details=merged or None,
        )


class PaymentError(Exception):
    """Exception raised at the HTTP edge for a PaymentFailure."""

    def __init__(self, failure: PaymentFailure) -> None:
        self.failure = failure
        self.code = failure.error_code
        super().__init__(failure.message)


class SignatureVerificationFailed(Exception):
    """Webhook payload failed signature verification."""


class PayloadParseFailed(Exception):
    """Webhook payload is not a parseable Stripe event."""


class SessionAlreadyAttached(Exception):
    """Application already references a different checkout session."""

    def __init__(self, application_id: str, existing_session_id: str) -> None:
        super().__init__(
            f"Application {application_id} already has checkout session {existing_session_id}"
        )
        self.application_id = application_id
        self.existing_session_id = existing_session_id
