"""Unit tests for WebhookReconciler.

Signatures are real HMAC-SHA256 values checked by the Stripe SDK.
Ledger and event log run against moto.
"""

import json
import time
from unittest.mock import MagicMock

import pytest

from intake.models.enums import ApplicationStatus, ProcessingResult
from intake.models.errors import PayloadParseFailed, SignatureVerificationFailed
from intake.services.secrets import SecretStoreError
from intake.services.webhook_events import compute_payload_hash
from intake.services.webhook_handler import WebhookReconciler

TEST_WEBHOOK_SECRET = "whsec_test_secret_for_testing"
TEST_SESSION_ID = "cs_test_abc123"
TEST_APPLICATION_ID = "APP-2026-0001"


@pytest.fixture
def reconciler(ledger, event_log) -> WebhookReconciler:
    return WebhookReconciler(ledger=ledger, webhook_secret=TEST_WEBHOOK_SECRET, event_log=event_log)


def _body(event: dict) -> bytes:
    return json.dumps(event).encode("utf-8")


# === Signature verification ===


class TestSignatureGate:
    """Invalid signatures are rejected before the ledger is touched."""

    def test_valid_signature_is_accepted(self, reconciler, put_application, make_event, sign):
        put_application()
        payload = _body(make_event())

        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.verified is True
        assert outcome.processing_result == ProcessingResult.SUCCESS

    def test_wrong_secret_leaves_ledger_untouched(
        self, reconciler, ledger, put_application, make_event, sign
    ):
        put_application()
        payload = _body(make_event())

        with pytest.raises(SignatureVerificationFailed):
            reconciler.handle(payload, sign(payload, secret="whsec_wrong"))

        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUBMITTED

    def test_tampered_payload_is_rejected(self, reconciler, ledger, put_application, make_event, sign):
        put_application()
        signature = sign(_body(make_event(event_type="checkout.session.expired")))
        tampered = _body(make_event())

        with pytest.raises(SignatureVerificationFailed):
            reconciler.handle(tampered, signature)

        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUBMITTED

    def test_stale_timestamp_is_rejected(self, reconciler, make_event, sign):
        payload = _body(make_event())
        stale = int(time.time()) - 3600

        with pytest.raises(SignatureVerificationFailed):
            reconciler.handle(payload, sign(payload, timestamp=stale))

    def test_missing_signature_with_secret_is_rejected(self, reconciler, ledger, put_application, make_event):
        put_application()

        with pytest.raises(SignatureVerificationFailed):
            reconciler.handle(_body(make_event()), None)

        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUBMITTED

    def test_no_secret_accepts_unverified(self, ledger, put_application, make_event, caplog):
        put_application()
        reconciler = WebhookReconciler(ledger=ledger, webhook_secret=None)

        outcome = reconciler.handle(_body(make_event()), None)

        assert outcome.verified is False
        assert outcome.processing_result == ProcessingResult.SUCCESS
        assert "without signature verification" in caplog.text

    def test_no_secret_refused_when_unverified_not_allowed(self, ledger):
        with pytest.raises(SecretStoreError):
            WebhookReconciler(ledger=ledger, webhook_secret=None, allow_unverified=False)

    def test_forged_event_rejected_when_secret_required(
        self, ledger, put_application, make_event
    ):
        put_application()
        reconciler = WebhookReconciler(
            ledger=ledger, webhook_secret=TEST_WEBHOOK_SECRET, allow_unverified=False
        )

        with pytest.raises(SignatureVerificationFailed):
            reconciler.handle(_body(make_event()), "t=1,v1=forged")

        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUBMITTED


# === Parsing ===


class TestParsing:
    def test_invalid_json(self, reconciler, sign):
        payload = b"not json"

        with pytest.raises(PayloadParseFailed) as exc_info:
            reconciler.handle(payload, sign(payload))

        assert str(exc_info.value) == "Failed to parse body"

    def test_event_without_type(self, reconciler, sign):
        payload = _body({"id": "evt_1", "data": {}})

        with pytest.raises(PayloadParseFailed):
            reconciler.handle(payload, sign(payload))

    def test_handled_type_without_session_object(self, reconciler, sign):
        payload = _body({"id": "evt_1", "type": "checkout.session.completed", "data": {}})

        with pytest.raises(PayloadParseFailed):
            reconciler.handle(payload, sign(payload))


# === Event handling ===


class TestEventHandling:
    """Acted-on events drive the ledger; everything else is acknowledged."""

    def test_completed_marks_success(self, reconciler, ledger, put_application, make_event, sign):
        put_application()
        payload = _body(make_event())

        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.event_id == "evt_1ABC123DEF456"
        assert outcome.session_id == TEST_SESSION_ID
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUCCESS

    def test_completed_is_acted_on_regardless_of_payment_status(
        self, reconciler, ledger, put_application, make_event, sign
    ):
        put_application()
        payload = _body(make_event(payment_status="unpaid"))

        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.processing_result == ProcessingResult.SUCCESS
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUCCESS

    def test_async_payment_failed_marks_failed(
        self, reconciler, ledger, put_application, make_event, sign
    ):
        put_application()
        payload = _body(
            make_event(event_type="checkout.session.async_payment_failed", payment_status="unpaid")
        )

        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.processing_result == ProcessingResult.SUCCESS
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.FAILED

    def test_failed_after_completed_does_not_downgrade(
        self, reconciler, ledger, put_application, make_event, sign
    ):
        put_application()
        completed = _body(make_event(event_id="evt_completed"))
        failed = _body(
            make_event(event_type="checkout.session.async_payment_failed", event_id="evt_failed")
        )

        reconciler.handle(completed, sign(completed))
        outcome = reconciler.handle(failed, sign(failed))

        assert outcome.processing_result == ProcessingResult.UNCHANGED
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUCCESS

    def test_unknown_session_is_acknowledged(self, reconciler, make_event, sign, caplog):
        payload = _body(make_event(session_id="cs_123"))

        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.processing_result == ProcessingResult.NOT_FOUND
        assert "Application not found for session ID: cs_123" in caplog.text

    def test_unknown_session_repeated_event_is_still_safe(self, ledger, make_event):
        reconciler = WebhookReconciler(ledger=ledger, webhook_secret=None)
        payload = _body(make_event(session_id="cs_123"))

        first = reconciler.handle(payload, None)
        second = reconciler.handle(payload, None)

        assert first.processing_result == ProcessingResult.NOT_FOUND
        assert second.processing_result == ProcessingResult.NOT_FOUND

    def test_expired_is_skipped(self, reconciler, ledger, put_application, make_event, sign):
        put_application()
        payload = _body(make_event(event_type="checkout.session.expired", payment_status="unpaid"))

        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.processing_result == ProcessingResult.SKIPPED
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUBMITTED

    def test_unhandled_event_type_is_skipped(self, reconciler, sign):
        payload = _body(
            {
                "id": "evt_charge",
                "type": "charge.refunded",
                "data": {"object": {"id": "ch_3ABC123", "amount_refunded": 100}},
            }
        )

        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.event_type == "charge.refunded"
        assert outcome.processing_result == ProcessingResult.SKIPPED
        assert outcome.session_id == "ch_3ABC123"


# === Audit log ===


class TestEventLog:
    """Redelivered events are answered from the audit log."""

    def test_event_is_recorded(self, reconciler, dynamodb_resource, put_application, make_event, sign):
        put_application()
        payload = _body(make_event())

        reconciler.handle(payload, sign(payload))

        item = dynamodb_resource.Table("test-intake-stripe-webhook-events").get_item(
            Key={"event_id": "evt_1ABC123DEF456"}
        )["Item"]
        assert item["event_type"] == "checkout.session.completed"
        assert item["session_id"] == TEST_SESSION_ID
        assert item["processing_result"] == "success"
        assert item["payload_hash"] == compute_payload_hash(payload)

    def test_redelivery_is_duplicate(self, reconciler, put_application, make_event, sign):
        put_application()
        payload = _body(make_event())

        reconciler.handle(payload, sign(payload))
        outcome = reconciler.handle(payload, sign(payload))

        assert outcome.processing_result == ProcessingResult.DUPLICATE

    def test_duplicate_does_not_consult_ledger(self, event_log, make_event):
        mock_ledger = MagicMock()
        event_log.record(
            event_id="evt_1ABC123DEF456",
            event_type="checkout.session.completed",
            payload=b"{}",
            session_id=TEST_SESSION_ID,
            processing_result="success",
        )
        reconciler = WebhookReconciler(ledger=mock_ledger, webhook_secret=None, event_log=event_log)

        outcome = reconciler.handle(_body(make_event()), None)

        assert outcome.processing_result == ProcessingResult.DUPLICATE
        mock_ledger.update_status.assert_not_called()

    def test_second_record_of_same_event_keeps_first(self, event_log, dynamodb_resource):
        event_log.record("evt_1", "checkout.session.completed", b"{}", TEST_SESSION_ID, "success")
        event_log.record("evt_1", "checkout.session.completed", b"{}", TEST_SESSION_ID, "unchanged")

        item = dynamodb_resource.Table("test-intake-stripe-webhook-events").get_item(
            Key={"event_id": "evt_1"}
        )["Item"]
        assert item["processing_result"] == "success"
        assert event_log.is_processed("evt_1")
        assert not event_log.is_processed("evt_2")
