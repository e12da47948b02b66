"""Webhook reconciler for Stripe checkout events.

Provides business logic for handling webhook events separate from
HTTP routing concerns. The HTTP layer answers 200 whenever handle()
returns and 400 only for SignatureVerificationFailed or PayloadParseFailed;
Stripe keeps retrying anything else.

Acted-on events:
- checkout.session.completed -> application status success
- checkout.session.async_payment_failed -> application status failed

Every other event type is acknowledged and ignored.
"""

import json

import stripe
from pydantic import BaseModel, ConfigDict

from intake.models.enums import ApplicationStatus, ProcessingResult
from intake.models.errors import PayloadParseFailed, SignatureVerificationFailed
from intake.models.stripe_webhook import (
    CheckoutSessionAsyncPaymentFailed,
    CheckoutSessionCompleted,
    CheckoutSessionExpired,
    WebhookEvent,
    parse_webhook_event,
)
from intake.utils.logging import get_logger, log_webhook_event

from .ledger import ApplicationPaymentLedger
from .secrets import SecretStoreError
from .webhook_events import WebhookEventLog

logger = get_logger(__name__)

SIGNATURE_TOLERANCE_SECONDS = stripe.Webhook.DEFAULT_TOLERANCE


class WebhookOutcome(BaseModel):
    """Result of handling one webhook delivery."""

    model_config = ConfigDict(frozen=True)

    event_id: str | None = None
    event_type: str
    session_id: str | None = None
    processing_result: ProcessingResult
    verified: bool = True


class WebhookReconciler:
    """Verifies Stripe webhooks and reconciles application payment status.

    Usage:
        reconciler = WebhookReconciler(ledger, webhook_secret="whsec_...")
        outcome = reconciler.handle(raw_body, request.headers.get("Stripe-Signature"))
    """

    def __init__(
        self,
        ledger: ApplicationPaymentLedger,
        webhook_secret: str | None,
        event_log: WebhookEventLog | None = None,
        allow_unverified: bool = True,
    ) -> None:
        """Initialize reconciler.

        Args:
            ledger: Application payment ledger
            webhook_secret: Stripe signing secret (whsec_xxx). None disables
                verification, which is only acceptable for local development.
            event_log: Optional audit log used to short-circuit redeliveries
            allow_unverified: Whether a missing secret may disable verification

        Raises:
            SecretStoreError: No secret while unverified mode is not allowed.
        """
        if not webhook_secret and not allow_unverified:
            raise SecretStoreError(
                "STRIPE_WEBHOOK_SECRET is required; refusing to accept unsigned webhooks"
            )
        self._ledger = ledger
        self._webhook_secret = webhook_secret
        self._event_log = event_log

    def handle(self, payload: bytes, signature: str | None) -> WebhookOutcome:
        """Verify, parse and apply a webhook delivery.

        Args:
            payload: Raw request body bytes
            signature: Stripe-Signature header value

        Returns:
            WebhookOutcome describing what happened.

        Raises:
            SignatureVerificationFailed: Signature missing or invalid while a
                signing secret is configured.
            PayloadParseFailed: Body is not a valid Stripe event.
        """
        verified = self._verify(payload, signature)
        event = parse_webhook_event(self._decode(payload))
        session_id = event.session_id

        log_webhook_event(
            logger,
            event.type,
            event.id,
            session_id=session_id,
            result="received" if verified else "unverified",
        )

        if event.id and self._event_log and self._event_log.is_processed(event.id):
            log_webhook_event(
                logger, event.type, event.id, session_id=session_id, result="duplicate"
            )
            return WebhookOutcome(
                event_id=event.id,
                event_type=event.type,
                session_id=session_id,
                processing_result=ProcessingResult.DUPLICATE,
                verified=verified,
            )

        result = self._apply(event)

        log_webhook_event(
            logger, event.type, event.id, session_id=session_id, result=result.value
        )

        if event.id and self._event_log:
            self._event_log.record(
                event_id=event.id,
                event_type=event.type,
                payload=payload,
                session_id=session_id,
                processing_result=result.value,
            )

        return WebhookOutcome(
            event_id=event.id,
            event_type=event.type,
            session_id=session_id,
            processing_result=result,
            verified=verified,
        )

    def _verify(self, payload: bytes, signature: str | None) -> bool:
        """Check the Stripe-Signature header against the signing secret.

        With a secret configured, a delivery without the header is rejected
        rather than parsed unverified.

        Returns:
            True if verified, False if verification is disabled.
        """
        if not self._webhook_secret:
            logger.warning(
                "STRIPE_WEBHOOK_SECRET not configured; accepting webhook without "
                "signature verification"
            )
            return False

        if not signature:
            logger.warning("Webhook request missing Stripe-Signature header")
            raise SignatureVerificationFailed("Missing Stripe-Signature header")

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self._webhook_secret,
                SIGNATURE_TOLERANCE_SECONDS,
            )
        except UnicodeDecodeError as e:
            raise SignatureVerificationFailed("Payload is not valid UTF-8") from e
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise SignatureVerificationFailed(str(e) or "Invalid webhook signature") from e
        return True

    @staticmethod
    def _decode(payload: bytes) -> object:
        try:
            return json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            logger.error("Failed to parse webhook body: %s", e)
            raise PayloadParseFailed("Failed to parse body") from e

    def _apply(self, event: WebhookEvent) -> ProcessingResult:
        if isinstance(event, CheckoutSessionCompleted):
            return self._transition(event.session_id, ApplicationStatus.SUCCESS)
        if isinstance(event, CheckoutSessionAsyncPaymentFailed):
            return self._transition(event.session_id, ApplicationStatus.FAILED)
        if isinstance(event, CheckoutSessionExpired):
            # Abandoned checkout; the application can start a new payment later
            logger.info("Checkout session %s expired", event.session_id)
            return ProcessingResult.SKIPPED
        logger.info("Unhandled event type %s, skipping", event.type)
        return ProcessingResult.SKIPPED

    def _transition(self, session_id: str, status: ApplicationStatus) -> ProcessingResult:
        update = self._ledger.update_status(session_id, status)
        if update.record is None:
            return ProcessingResult.NOT_FOUND
        if update.applied:
            return ProcessingResult.SUCCESS
        return ProcessingResult.UNCHANGED
