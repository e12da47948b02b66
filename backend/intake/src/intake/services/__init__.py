"""Payment services for the visa-intake backend."""

from .checkout import CheckoutService, CheckoutSessionGateway
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .ledger import ApplicationPaymentLedger, DynamoDBApplicationLedger
from .payment_intents import PaymentIntentGateway
from .secrets import SecretStore, SecretStoreError, get_secret_store
from .stripe_service import StripeServiceError, create_stripe_client, get_stripe_client
from .webhook_events import WebhookEventLog
from .webhook_handler import WebhookOutcome, WebhookReconciler

__all__ = [
    "ApplicationPaymentLedger",
    "CheckoutService",
    "CheckoutSessionGateway",
    "DynamoDBApplicationLedger",
    "DynamoDBService",
    "PaymentIntentGateway",
    "SecretStore",
    "SecretStoreError",
    "StripeServiceError",
    "WebhookEventLog",
    "WebhookOutcome",
    "WebhookReconciler",
    "create_stripe_client",
    "get_dynamodb_service",
    "get_secret_store",
    "get_stripe_client",
    "reset_dynamodb_service",
]
