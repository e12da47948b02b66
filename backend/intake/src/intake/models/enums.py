"""Enumeration types for payment data models."""

from enum import Enum


class ApplicationStatus(str, Enum):
    """Payment status of a visa application.

    SUBMITTED is the initial state; SUCCESS and FAILED are terminal.
    """

    SUBMITTED = "Request Submitted"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({ApplicationStatus.SUCCESS, ApplicationStatus.FAILED})


class CheckoutSessionStatus(str, Enum):
    """Lifecycle status of a Stripe Checkout Session."""

    OPEN = "open"
    COMPLETE = "complete"
    EXPIRED = "expired"


class CheckoutPaymentStatus(str, Enum):
    """Payment status reported on a Stripe Checkout Session."""

    UNPAID = "unpaid"
    PAID = "paid"
    NO_PAYMENT_REQUIRED = "no_payment_required"


class WebhookEventType(str, Enum):
    """Stripe event types the reconciler knows about."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    CHECKOUT_SESSION_ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
    CHECKOUT_SESSION_EXPIRED = "checkout.session.expired"


class ProcessingResult(str, Enum):
    """Outcome of processing one webhook delivery or status update."""

    SUCCESS = "success"
    UNCHANGED = "unchanged"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
