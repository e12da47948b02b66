"""Audit log of received Stripe webhook events.

Each delivery with an event id is written once to the stripe-webhook-events
table. A redelivered event id is recognised and answered without touching
the ledger.
"""

import datetime as dt
import hashlib
from typing import Any

from intake.models.stripe_webhook import StripeWebhookEvent
from intake.utils.logging import get_logger

from .dynamodb import DynamoDBService

logger = get_logger(__name__)


def compute_payload_hash(payload: bytes) -> str:
    """Compute SHA-256 hash of webhook payload for auditing.

    Args:
        payload: Raw webhook payload bytes.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    return hashlib.sha256(payload).hexdigest()


class WebhookEventLog:
    """DynamoDB-backed record of processed webhook events."""

    WEBHOOK_EVENTS_TABLE = "stripe-webhook-events"

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    def is_processed(self, event_id: str) -> bool:
        """Check if webhook event was already processed.

        Args:
            event_id: Stripe event ID

        Returns:
            True if event was already processed
        """
        existing = self._db.get_item(self.WEBHOOK_EVENTS_TABLE, {"event_id": event_id})
        return existing is not None

    def record(
        self,
        event_id: str,
        event_type: str,
        payload: bytes,
        session_id: str | None,
        processing_result: str,
        error_message: str | None = None,
    ) -> StripeWebhookEvent:
        """Write an event to the log.

        A concurrent delivery of the same event may already have written
        it; the first write wins.

        Args:
            event_id: Stripe event ID
            event_type: Event type (checkout.session.completed, etc.)
            payload: Raw payload bytes, stored as a SHA-256 hash
            session_id: Checkout session referenced by the event (if any)
            processing_result: Result (success, unchanged, skipped, not_found)
            error_message: Error message if processing failed

        Returns:
            The logged event.
        """
        event = StripeWebhookEvent(
            event_id=event_id,
            event_type=event_type,
            processed_at=dt.datetime.now(dt.UTC),
            payload_hash=compute_payload_hash(payload),
            session_id=session_id,
            processing_result=processing_result,
            error_message=error_message,
        )

        item: dict[str, Any] = {
            "event_id": event.event_id,
            "event_type": event.event_type,
            "processed_at": event.processed_at.isoformat(),
            "payload_hash": event.payload_hash,
            "processing_result": event.processing_result,
        }
        if event.session_id:
            item["session_id"] = event.session_id
        if event.error_message:
            item["error_message"] = event.error_message

        written = self._db.put_item(
            self.WEBHOOK_EVENTS_TABLE,
            item,
            condition_expression="attribute_not_exists(event_id)",
        )
        if not written:
            logger.info("Webhook event %s already logged by a concurrent delivery", event_id)
        return event
