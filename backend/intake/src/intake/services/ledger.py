"""Application payment ledger.

Reads and updates the payment state of visa applications, keyed by the
Stripe checkout session id. Status transitions are monotonic:

    Request Submitted -> success | failed

success and failed are terminal. A write that would move a terminal record
is dropped, and repeating the transition that already happened is a no-op.
The guard is a DynamoDB condition expression, so a webhook and a status
poll racing on the same session converge without locks.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Protocol

from intake.models.application import ApplicationPaymentRecord, StatusUpdate
from intake.models.enums import ApplicationStatus
from intake.models.errors import SessionAlreadyAttached
from intake.utils.logging import get_logger, log_payment_operation

from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class ApplicationPaymentLedger(Protocol):
    """Persistence contract the reconciler and checkout service depend on."""

    def find_by_session_id(self, session_id: str) -> ApplicationPaymentRecord | None: ...

    def update_status(self, session_id: str, new_status: ApplicationStatus) -> StatusUpdate: ...

    def attach_session(
        self,
        application_id: str,
        session_id: str,
        amount: Decimal,
        currency: str,
    ) -> ApplicationPaymentRecord | None: ...


class DynamoDBApplicationLedger:
    """ApplicationPaymentLedger backed by the applications table.

    Table layout:
        applications: PK application_id, GSI stripe_session_id-index
    """

    APPLICATIONS_TABLE = "applications"
    SESSION_INDEX = "stripe_session_id-index"

    def __init__(self, db: DynamoDBService) -> None:
        """Initialize ledger.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def get(self, application_id: str) -> ApplicationPaymentRecord | None:
        """Get an application's payment record by application id."""
        item = self.db.get_item(
            self.APPLICATIONS_TABLE,
            {"application_id": application_id},
            consistent_read=True,
        )
        return self._item_to_record(item) if item else None

    def find_by_session_id(self, session_id: str) -> ApplicationPaymentRecord | None:
        """Find the application that owns a checkout session.

        Args:
            session_id: Stripe checkout session id

        Returns:
            The record, or None if no application references the session.
        """
        items = self.db.query_by_gsi(
            self.APPLICATIONS_TABLE,
            self.SESSION_INDEX,
            "stripe_session_id",
            session_id,
        )
        if not items:
            return None
        if len(items) > 1:
            logger.error(
                "Checkout session %s is referenced by %d applications",
                session_id,
                len(items),
            )
        # GSI reads are eventually consistent; re-read the base item
        return self.get(items[0]["application_id"]) or self._item_to_record(items[0])

    def attach_session(
        self,
        application_id: str,
        session_id: str,
        amount: Decimal,
        currency: str,
    ) -> ApplicationPaymentRecord | None:
        """Store a new checkout session id on an application.

        The session id is written once. Attaching the same id again is a
        no-op; attaching a different id raises.

        Args:
            application_id: Application to update
            session_id: Stripe checkout session id
            amount: Amount in display units
            currency: ISO currency code

        Returns:
            The updated record, or None if the application does not exist.

        Raises:
            SessionAlreadyAttached: If the application holds another session id.
        """
        attrs = self.db.update_item(
            self.APPLICATIONS_TABLE,
            {"application_id": application_id},
            "SET stripe_session_id = :sid, amount = :amount, currency = :currency, "
            "updated_at = :now",
            {
                ":sid": session_id,
                ":amount": amount,
                ":currency": currency.lower(),
                ":now": dt.datetime.now(dt.UTC).isoformat(),
            },
            condition_expression=(
                "attribute_exists(application_id) AND "
                "(attribute_not_exists(stripe_session_id) OR stripe_session_id = :sid)"
            ),
        )
        if attrs is not None:
            log_payment_operation(
                logger,
                "attach_session",
                session_id=session_id,
                application_id=application_id,
                amount=amount,
                currency=currency,
            )
            return self._item_to_record(attrs)

        existing = self.get(application_id)
        if existing is None:
            logger.warning("Cannot attach session %s: application %s not found", session_id, application_id)
            return None
        raise SessionAlreadyAttached(application_id, existing.stripe_session_id or "")

    def update_status(self, session_id: str, new_status: ApplicationStatus) -> StatusUpdate:
        """Move an application to a terminal payment status.

        Args:
            session_id: Stripe checkout session id
            new_status: Target status (success or failed)

        Returns:
            StatusUpdate; applied is False when the record is absent, already
            terminal, or the target is not a terminal status.
        """
        record = self.find_by_session_id(session_id)
        if record is None:
            logger.warning("Application not found for session ID: %s", session_id)
            return StatusUpdate(session_id=session_id, requested=new_status, applied=False)

        if not new_status.is_terminal:
            logger.info(
                "Ignoring non-terminal status %s for session %s",
                new_status.value,
                session_id,
            )
            return StatusUpdate(
                session_id=session_id, requested=new_status, applied=False, record=record
            )

        if record.is_terminal:
            self._log_dropped(record, new_status)
            return StatusUpdate(
                session_id=session_id, requested=new_status, applied=False, record=record
            )

        attrs = self.db.update_item(
            self.APPLICATIONS_TABLE,
            {"application_id": record.application_id},
            "SET #status = :status, updated_at = :now",
            {
                ":status": new_status.value,
                ":submitted": ApplicationStatus.SUBMITTED.value,
                ":sid": session_id,
                ":now": dt.datetime.now(dt.UTC).isoformat(),
            },
            {"#status": "status"},  # status is a reserved word
            condition_expression=(
                "stripe_session_id = :sid AND "
                "(attribute_not_exists(#status) OR #status = :submitted)"
            ),
        )

        if attrs is None:
            # Another writer reached a terminal state first
            current = self.get(record.application_id)
            if current is not None:
                self._log_dropped(current, new_status)
            return StatusUpdate(
                session_id=session_id, requested=new_status, applied=False, record=current
            )

        updated = self._item_to_record(attrs)
        log_payment_operation(
            logger,
            "update_status",
            session_id=session_id,
            application_id=updated.application_id,
            status=updated.status.value,
        )
        return StatusUpdate(
            session_id=session_id, requested=new_status, applied=True, record=updated
        )

    @staticmethod
    def _log_dropped(record: ApplicationPaymentRecord, requested: ApplicationStatus) -> None:
        if record.status == requested:
            logger.info(
                "Application %s already %s, nothing to do",
                record.application_id,
                record.status.value,
            )
        else:
            logger.warning(
                "Refusing to move application %s from terminal %s to %s",
                record.application_id,
                record.status.value,
                requested.value,
            )

    @staticmethod
    def _item_to_record(item: dict[str, Any]) -> ApplicationPaymentRecord:
        """Convert DynamoDB item to ApplicationPaymentRecord."""
        amount = item.get("amount")
        return ApplicationPaymentRecord(
            application_id=item["application_id"],
            stripe_session_id=item.get("stripe_session_id"),
            status=ApplicationStatus(item.get("status") or ApplicationStatus.SUBMITTED.value),
            amount=Decimal(str(amount)) if amount is not None else None,
            currency=item.get("currency"),
            updated_at=(
                dt.datetime.fromisoformat(item["updated_at"])
                if item.get("updated_at")
                else None
            ),
        )
