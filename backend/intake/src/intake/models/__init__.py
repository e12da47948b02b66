"""Pydantic models for the visa-intake payment core."""

from .application import ApplicationPaymentRecord, StatusUpdate
from .enums import (
    TERMINAL_STATUSES,
    ApplicationStatus,
    CheckoutPaymentStatus,
    CheckoutSessionStatus,
    ProcessingResult,
    WebhookEventType,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    PayloadParseFailed,
    PaymentError,
    PaymentFailure,
    SessionAlreadyAttached,
    SignatureVerificationFailed,
)
from .payment import (
    CardDetails,
    ChargeResult,
    CheckoutResult,
    CheckoutSession,
    PaymentRequest,
    PaymentStatusResult,
)
from .stripe_webhook import (
    CheckoutSessionAsyncPaymentFailed,
    CheckoutSessionCompleted,
    CheckoutSessionExpired,
    StripeWebhookEvent,
    UnhandledEvent,
    WebhookEvent,
    parse_webhook_event,
)

__all__ = [
    # Enums
    "ApplicationStatus",
    "CheckoutPaymentStatus",
    "CheckoutSessionStatus",
    "ProcessingResult",
    "TERMINAL_STATUSES",
    "WebhookEventType",
    # Application
    "ApplicationPaymentRecord",
    "StatusUpdate",
    # Payment
    "CardDetails",
    "ChargeResult",
    "CheckoutResult",
    "CheckoutSession",
    "PaymentRequest",
    "PaymentStatusResult",
    # Errors
    "ErrorCode",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "PaymentError",
    "PaymentFailure",
    "PayloadParseFailed",
    "SessionAlreadyAttached",
    "SignatureVerificationFailed",
    # Webhooks
    "CheckoutSessionAsyncPaymentFailed",
    "CheckoutSessionCompleted",
    "CheckoutSessionExpired",
    "StripeWebhookEvent",
    "UnhandledEvent",
    "WebhookEvent",
    "parse_webhook_event",
]
