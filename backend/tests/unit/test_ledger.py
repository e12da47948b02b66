"""Unit tests for DynamoDBApplicationLedger against moto.

Covers the status state machine:
    Request Submitted -> success | failed, terminal states sticky
and attach-once semantics for the checkout session id.
"""

from decimal import Decimal

import pytest

from intake.models.enums import ApplicationStatus
from intake.models.errors import SessionAlreadyAttached

TEST_SESSION_ID = "cs_test_abc123"
TEST_APPLICATION_ID = "APP-2026-0001"


class TestFindBySessionId:
    def test_finds_record(self, ledger, put_application):
        put_application()

        record = ledger.find_by_session_id(TEST_SESSION_ID)

        assert record is not None
        assert record.application_id == TEST_APPLICATION_ID
        assert record.status == ApplicationStatus.SUBMITTED

    def test_unknown_session(self, ledger, put_application):
        put_application()

        assert ledger.find_by_session_id("cs_test_unknown") is None

    def test_missing_status_defaults_to_submitted(self, ledger, put_application):
        put_application(status=None)

        record = ledger.find_by_session_id(TEST_SESSION_ID)

        assert record.status == ApplicationStatus.SUBMITTED


class TestUpdateStatus:
    """Monotonic, idempotent status transitions."""

    def test_submitted_to_success(self, ledger, put_application):
        put_application()

        update = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUCCESS)

        assert update.applied is True
        assert update.record.status == ApplicationStatus.SUCCESS
        assert update.record.updated_at is not None

    def test_submitted_to_failed(self, ledger, put_application):
        put_application()

        update = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.FAILED)

        assert update.applied is True
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.FAILED

    def test_success_twice_is_idempotent(self, ledger, put_application):
        put_application()

        first = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUCCESS)
        second = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUCCESS)

        assert first.applied is True
        assert second.applied is False
        assert second.record == first.record

    def test_failed_after_success_does_not_downgrade(self, ledger, put_application):
        put_application()
        ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUCCESS)

        update = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.FAILED)

        assert update.applied is False
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUCCESS

    def test_success_after_failed_is_dropped(self, ledger, put_application):
        put_application(status="failed")

        update = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUCCESS)

        assert update.applied is False
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.FAILED

    def test_concurrent_terminal_write_wins(self, ledger, put_application, monkeypatch):
        """A stale read cannot overwrite a status another writer just set."""
        put_application()
        stale = ledger.find_by_session_id(TEST_SESSION_ID)
        ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUCCESS)
        monkeypatch.setattr(ledger, "find_by_session_id", lambda session_id: stale)

        update = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.FAILED)

        assert update.applied is False
        assert update.record.status == ApplicationStatus.SUCCESS
        assert ledger.get(TEST_APPLICATION_ID).status == ApplicationStatus.SUCCESS

    def test_non_terminal_target_is_ignored(self, ledger, put_application):
        put_application()

        update = ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUBMITTED)

        assert update.applied is False
        assert update.record.status == ApplicationStatus.SUBMITTED

    def test_unknown_session_is_a_no_op(self, ledger, caplog):
        update = ledger.update_status("cs_123", ApplicationStatus.SUCCESS)

        assert update.applied is False
        assert update.record is None
        assert "Application not found for session ID: cs_123" in caplog.text

    def test_unknown_session_repeated(self, ledger):
        ledger.update_status("cs_123", ApplicationStatus.SUCCESS)
        update = ledger.update_status("cs_123", ApplicationStatus.SUCCESS)

        assert update.record is None

    def test_other_applications_untouched(self, ledger, put_application):
        put_application()
        put_application(application_id="APP-2026-0002", session_id="cs_test_other")

        ledger.update_status(TEST_SESSION_ID, ApplicationStatus.SUCCESS)

        assert ledger.get("APP-2026-0002").status == ApplicationStatus.SUBMITTED


class TestAttachSession:
    """Session id is written once per application."""

    def test_attaches_session_amount_and_currency(self, ledger, put_application):
        put_application(session_id=None)

        record = ledger.attach_session(TEST_APPLICATION_ID, TEST_SESSION_ID, Decimal("150"), "AED")

        assert record.stripe_session_id == TEST_SESSION_ID
        assert record.amount == Decimal("150")
        assert record.currency == "aed"
        assert ledger.find_by_session_id(TEST_SESSION_ID).application_id == TEST_APPLICATION_ID

    def test_reattaching_same_session_is_allowed(self, ledger, put_application):
        put_application()

        record = ledger.attach_session(TEST_APPLICATION_ID, TEST_SESSION_ID, Decimal("150"), "aed")

        assert record.stripe_session_id == TEST_SESSION_ID

    def test_different_session_is_rejected(self, ledger, put_application):
        put_application()

        with pytest.raises(SessionAlreadyAttached) as exc_info:
            ledger.attach_session(TEST_APPLICATION_ID, "cs_test_new", Decimal("150"), "aed")

        assert exc_info.value.existing_session_id == TEST_SESSION_ID
        assert ledger.get(TEST_APPLICATION_ID).stripe_session_id == TEST_SESSION_ID

    def test_unknown_application(self, ledger):
        assert ledger.attach_session("APP-MISSING", TEST_SESSION_ID, Decimal("150"), "aed") is None
        assert ledger.get("APP-MISSING") is None
