"""FastAPI dependency injection providers for payment services.

This module provides factory functions for service instances using @lru_cache
so each is built once per process. The Stripe client is created once and
injected into both gateways.

Usage in routes:
    from api.dependencies import get_checkout_service

    @router.post("/payment/checkout")
    async def create_checkout(
        service: CheckoutService = Depends(get_checkout_service),
    ):
        ...

Service Dependency Graph:
    StripeClient (get_stripe_client)
        ├── PaymentIntentGateway
        └── CheckoutSessionGateway
                └── CheckoutService ── DynamoDBApplicationLedger
    DynamoDBService (get_dynamodb_service)
        ├── DynamoDBApplicationLedger
        │       └── WebhookReconciler
        └── WebhookEventLog

Testing:
    Use app.dependency_overrides, or reset_services() to clear cached instances.
"""

from functools import lru_cache

from intake.config import get_settings, reset_settings
from intake.services.checkout import CheckoutService, CheckoutSessionGateway
from intake.services.dynamodb import get_dynamodb_service, reset_dynamodb_service
from intake.services.ledger import DynamoDBApplicationLedger
from intake.services.payment_intents import PaymentIntentGateway
from intake.services.secrets import STRIPE_WEBHOOK_SECRET, get_secret_store
from intake.services.stripe_service import get_stripe_client
from intake.services.webhook_events import WebhookEventLog
from intake.services.webhook_handler import WebhookReconciler


@lru_cache
def get_payment_intent_gateway() -> PaymentIntentGateway:
    """Get cached PaymentIntentGateway instance."""
    return PaymentIntentGateway(client=get_stripe_client(), settings=get_settings())


@lru_cache
def get_checkout_gateway() -> CheckoutSessionGateway:
    """Get cached CheckoutSessionGateway instance."""
    return CheckoutSessionGateway(client=get_stripe_client(), settings=get_settings())


@lru_cache
def get_ledger() -> DynamoDBApplicationLedger:
    """Get cached DynamoDBApplicationLedger instance.

    Returns:
        Ledger configured with the DynamoDB singleton.
    """
    return DynamoDBApplicationLedger(db=get_dynamodb_service())


@lru_cache
def get_checkout_service() -> CheckoutService:
    """Get cached CheckoutService instance."""
    return CheckoutService(gateway=get_checkout_gateway(), ledger=get_ledger())


@lru_cache
def get_webhook_reconciler() -> WebhookReconciler:
    """Get cached WebhookReconciler instance.

    The signing secret is optional outside prod; without it webhooks are
    accepted unverified. A SecretStoreError (SSM outage, or no secret where
    unverified mode is refused) propagates and is not cached, so the next
    delivery tries again.
    """
    webhook_secret = get_secret_store().get_secret(STRIPE_WEBHOOK_SECRET, required=False)
    return WebhookReconciler(
        ledger=get_ledger(),
        webhook_secret=webhook_secret,
        event_log=WebhookEventLog(db=get_dynamodb_service()),
        allow_unverified=get_settings().unverified_webhooks_permitted,
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets settings, the secret store, the Stripe client and the
    DynamoDB singleton.
    """
    get_payment_intent_gateway.cache_clear()
    get_checkout_gateway.cache_clear()
    get_ledger.cache_clear()
    get_checkout_service.cache_clear()
    get_webhook_reconciler.cache_clear()

    get_stripe_client.cache_clear()
    get_secret_store.cache_clear()
    reset_settings()
    reset_dynamodb_service()
