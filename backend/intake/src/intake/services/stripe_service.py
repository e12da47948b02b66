"""Stripe client construction and provider error classification.

The client is built once per process from the secret store and injected
into each gateway; gateways never reach for a global client.
"""

from decimal import Decimal
from functools import lru_cache

import stripe
from stripe import StripeClient

from intake.config import PaymentSettings, get_settings
from intake.models.errors import ErrorCode, PaymentFailure
from intake.utils.logging import get_logger

from .secrets import STRIPE_SECRET_KEY, SecretStore, SecretStoreError, get_secret_store

logger = get_logger(__name__)

RAW_CARD_DATA_MARKER = "raw card data"

AUTHENTICATION_RECOVERY = "Check the Stripe API key configured for this environment"


class StripeServiceError(Exception):
    """Raised when the Stripe client cannot be created."""

    pass


def build_stripe_client(api_key: str, settings: PaymentSettings) -> StripeClient:
    """Create a StripeClient with the configured timeout and no retries.

    Args:
        api_key: Stripe secret key (sk_xxx)
        settings: Payment settings

    Returns:
        StripeClient instance
    """
    return StripeClient(
        api_key,
        max_network_retries=settings.stripe_max_network_retries,
        http_client=stripe.RequestsClient(timeout=settings.stripe_timeout_seconds),
    )


def create_stripe_client(
    secrets: SecretStore | None = None,
    settings: PaymentSettings | None = None,
) -> StripeClient:
    """Create a StripeClient from the secret store.

    Raises:
        StripeServiceError: If the API key cannot be retrieved.
    """
    secrets = secrets or get_secret_store()
    settings = settings or get_settings()
    try:
        api_key = secrets.get_secret(STRIPE_SECRET_KEY)
    except SecretStoreError as e:
        raise StripeServiceError(f"Failed to initialize Stripe client: {e}") from e
    if not api_key:
        raise StripeServiceError("STRIPE_SECRET_KEY is not defined")

    logger.info("Stripe client initialized for environment: %s", settings.environment)
    return build_stripe_client(api_key, settings)


@lru_cache(maxsize=1)
def get_stripe_client() -> StripeClient:
    """Get the shared StripeClient instance.

    Returns:
        StripeClient built on first use.
    """
    return create_stripe_client()


def provider_message(error: stripe.StripeError) -> str:
    """Return the provider's own error text without the request-id prefix."""
    return error.user_message or str(error)


def classify_stripe_error(
    error: stripe.StripeError,
    *,
    fallback: ErrorCode,
    amount: Decimal | None = None,
    currency: str | None = None,
) -> PaymentFailure:
    """Map a Stripe exception onto the payment error taxonomy.

    Args:
        error: Exception raised by the Stripe SDK
        fallback: Error code for anything not card- or configuration-specific
        amount: Attempted amount (display units) for diagnostics
        currency: Attempted currency for diagnostics

    Returns:
        PaymentFailure describing the error.
    """
    message = provider_message(error)
    details = {"provider_message": message}
    stripe_code = getattr(error, "code", None)
    if stripe_code:
        details["stripe_error_code"] = stripe_code

    context = {"amount": amount, "currency": currency, "details": details}

    if RAW_CARD_DATA_MARKER in message.lower():
        return PaymentFailure.from_code(
            ErrorCode.PROVIDER_REJECTED,
            "Raw card data APIs are not enabled for this Stripe account",
            **context,
        )

    if isinstance(error, stripe.CardError):
        return PaymentFailure.from_code(
            ErrorCode.CARD_DECLINED,
            f"Payment failed: {message}",
            **context,
        )

    if isinstance(error, (stripe.AuthenticationError, stripe.PermissionError)):
        return PaymentFailure.from_code(
            ErrorCode.PROVIDER_REJECTED,
            f"Stripe rejected the request: {message}",
            recovery=AUTHENTICATION_RECOVERY,
            **context,
        )

    prefix = (
        "Checkout session creation failed"
        if fallback == ErrorCode.SESSION_CREATION_FAILED
        else "Payment processing failed"
    )
    return PaymentFailure.from_code(fallback, f"{prefix}: {message}", **context)
