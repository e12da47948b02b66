"""Pytest configuration and fixtures for visa-intake payment tests.

This module provides reusable fixtures for testing:
- DynamoDB and SSM mocking with moto
- A MagicMock Stripe client and gateways built on it
- Sample application records
"""

import hashlib
import hmac
import os
import time
from typing import Any, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-intake")
os.environ.setdefault("BASE_URL", "http://localhost:4000")
os.environ.setdefault("BASE_CURRENCY", "aed")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from intake.config import PaymentSettings, reset_settings  # noqa: E402
from intake.services.dynamodb import DynamoDBService, reset_dynamodb_service  # noqa: E402
from intake.services.ledger import DynamoDBApplicationLedger  # noqa: E402
from intake.services.secrets import get_secret_store  # noqa: E402
from intake.services.stripe_service import get_stripe_client  # noqa: E402
from intake.services.webhook_events import WebhookEventLog  # noqa: E402

TABLE_PREFIX = "test-intake"
APPLICATIONS_TABLE = f"{TABLE_PREFIX}-applications"
WEBHOOK_EVENTS_TABLE = f"{TABLE_PREFIX}-stripe-webhook-events"


# === Singleton Resets ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached settings and service singletons before and after each test.

    Tests using mock_aws get fresh boto3 resources inside the mock context
    rather than reusing ones built in a previous test.
    """
    reset_settings()
    reset_dynamodb_service()
    get_secret_store.cache_clear()
    get_stripe_client.cache_clear()
    yield
    reset_settings()
    reset_dynamodb_service()
    get_secret_store.cache_clear()
    get_stripe_client.cache_clear()


# === Settings Fixtures ===


@pytest.fixture
def settings() -> PaymentSettings:
    """Settings for a dev environment with raw card data allowed."""
    return PaymentSettings(
        environment="dev",
        base_currency="aed",
        base_url="http://localhost:4000",
        allow_raw_card_data=True,
        table_prefix=TABLE_PREFIX,
    )


@pytest.fixture
def prod_settings() -> PaymentSettings:
    """Settings for prod, where raw card data is disabled."""
    return PaymentSettings(
        environment="prod",
        base_currency="aed",
        base_url="https://visa.example.com",
        allow_raw_card_data=False,
        table_prefix="visa-intake-prod",
    )


# === Stripe Fixtures ===


@pytest.fixture
def stripe_client() -> MagicMock:
    """Mock StripeClient; tests set return values on the resource methods."""
    return MagicMock()


# === AWS Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def dynamodb_resource(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB resource with the payment tables."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        client.create_table(
            TableName=APPLICATIONS_TABLE,
            KeySchema=[{"AttributeName": "application_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "application_id", "AttributeType": "S"},
                {"AttributeName": "stripe_session_id", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "stripe_session_id-index",
                    "KeySchema": [{"AttributeName": "stripe_session_id", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        client.create_table(
            TableName=WEBHOOK_EVENTS_TABLE,
            KeySchema=[{"AttributeName": "event_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "event_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield boto3.resource("dynamodb", region_name="eu-west-1")


@pytest.fixture
def dynamodb_service(dynamodb_resource: Any) -> DynamoDBService:
    """DynamoDBService bound to the mocked tables."""
    return DynamoDBService(TABLE_PREFIX, resource=dynamodb_resource)


@pytest.fixture
def ledger(dynamodb_service: DynamoDBService) -> DynamoDBApplicationLedger:
    return DynamoDBApplicationLedger(db=dynamodb_service)


@pytest.fixture
def event_log(dynamodb_service: DynamoDBService) -> WebhookEventLog:
    return WebhookEventLog(db=dynamodb_service)


@pytest.fixture
def put_application(dynamodb_resource: Any):
    """Insert an application item and return it."""
    table = dynamodb_resource.Table(APPLICATIONS_TABLE)

    def _put(
        application_id: str = "APP-2026-0001",
        session_id: str | None = "cs_test_abc123",
        status: str | None = "Request Submitted",
    ) -> dict[str, Any]:
        item: dict[str, Any] = {"application_id": application_id}
        if session_id is not None:
            item["stripe_session_id"] = session_id
        if status is not None:
            item["status"] = status
        table.put_item(Item=item)
        return item

    return _put


@pytest.fixture
def ssm_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked SSM client."""
    with mock_aws():
        yield boto3.client("ssm", region_name="eu-west-1")


# === Webhook Fixtures ===

TEST_WEBHOOK_SECRET = "whsec_test_secret_for_testing"


def create_stripe_signature(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Create a valid Stripe webhook signature.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    ts = str(timestamp if timestamp is not None else int(time.time()))
    signed_payload = f"{ts}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={ts},v1={signature}"


def checkout_event(
    event_type: str = "checkout.session.completed",
    event_id: str = "evt_1ABC123DEF456",
    session_id: str = "cs_test_abc123",
    payment_status: str = "paid",
) -> dict[str, Any]:
    """Build a checkout.session.* webhook event."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_intent": "pi_3ABC123DEF456",
                "payment_status": payment_status,
                "status": "complete",
                "amount_total": 150,
                "currency": "aed",
                "customer_email": "applicant@example.com",
                "metadata": {"application_id": "APP-2026-0001"},
            },
        },
    }


@pytest.fixture
def sign() -> Any:
    """Sign a payload with the test webhook secret."""

    def _sign(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
        return create_stripe_signature(payload, secret, timestamp)

    return _sign


@pytest.fixture
def make_event() -> Any:
    """Build a checkout.session.* event dict."""
    return checkout_event
