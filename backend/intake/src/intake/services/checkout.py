"""Stripe Checkout sessions: creation, retrieval and status polling.

The checkout path completes outside this server's request cycle. Its only
durable handle is the session id, which start_checkout() stores on the
application before the checkout URL is handed back. Completion is learned
later from a webhook or from check_status().
"""

from decimal import Decimal
from typing import Any

import stripe
from stripe import StripeClient

from intake.config import PaymentSettings
from intake.models.enums import ApplicationStatus, CheckoutPaymentStatus, CheckoutSessionStatus
from intake.models.errors import ErrorCode, PaymentFailure, SessionAlreadyAttached
from intake.models.payment import CheckoutResult, CheckoutSession, PaymentStatusResult
from intake.utils.logging import get_logger, log_payment_operation

from .currency import (
    from_smallest_unit,
    is_below_minimum,
    normalize_currency,
    to_decimal,
    to_smallest_unit,
)
from .ledger import ApplicationPaymentLedger
from .payment_intents import minimum_amount_failure
from .stripe_service import classify_stripe_error

logger = get_logger(__name__)

LINE_ITEM_NAME = "Visa application fee"


class CheckoutSessionGateway:
    """Gateway for Stripe Checkout Sessions."""

    def __init__(self, client: StripeClient, settings: PaymentSettings) -> None:
        self._client = client
        self._settings = settings

    def create_session(
        self,
        amount: Decimal | int | float | str,
        currency: str | None = None,
        success_url: str | None = None,
        cancel_url: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CheckoutResult | PaymentFailure:
        """Create a hosted one-time payment page.

        Args:
            amount: Amount in display units
            currency: ISO currency code, defaults to the base currency
            success_url: Redirect after payment; {CHECKOUT_SESSION_ID} is
                substituted by Stripe. Defaults to the service success page.
            cancel_url: Redirect when the customer abandons checkout
            metadata: Extra metadata stored on the session

        Returns:
            CheckoutResult with the hosted URL and session id, or PaymentFailure.
        """
        value = to_decimal(amount)
        code = normalize_currency(currency, self._settings.base_currency)

        if is_below_minimum(value, code):
            return minimum_amount_failure(value, code)

        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": code,
                        "unit_amount": to_smallest_unit(value, code),
                        "product_data": {
                            "name": LINE_ITEM_NAME,
                            "description": f"Payment of {value} {code.upper()}",
                        },
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url or self._settings.default_success_url,
            "cancel_url": cancel_url or self._settings.default_cancel_url,
        }
        if metadata:
            params["metadata"] = metadata

        try:
            session = self._client.checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            failure = classify_stripe_error(
                e,
                fallback=ErrorCode.SESSION_CREATION_FAILED,
                amount=value,
                currency=code,
            )
            log_payment_operation(
                logger,
                "create_checkout_session",
                amount=value,
                currency=code,
                error=failure.message,
            )
            return failure

        log_payment_operation(
            logger,
            "create_checkout_session",
            session_id=session.id,
            amount=value,
            currency=code,
        )
        return CheckoutResult(
            checkout_url=session.url or "",
            session_id=session.id,
            amount=value,
            currency=code.upper(),
        )

    def retrieve_session(self, session_id: str) -> CheckoutSession | PaymentFailure:
        """Fetch the current state of a checkout session from Stripe.

        Args:
            session_id: Stripe checkout session id (cs_xxx)

        Returns:
            CheckoutSession, or PaymentFailure if Stripe cannot be reached or
            does not know the session.
        """
        try:
            session = self._client.checkout.sessions.retrieve(session_id)
        except stripe.StripeError as e:
            failure = classify_stripe_error(e, fallback=ErrorCode.UNKNOWN_PROVIDER_ERROR)
            log_payment_operation(
                logger, "retrieve_checkout_session", session_id=session_id, error=failure.message
            )
            return failure

        payment_intent = session.payment_intent
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id

        return CheckoutSession(
            session_id=session.id,
            status=CheckoutSessionStatus(session.status) if session.status else None,
            payment_status=CheckoutPaymentStatus(session.payment_status),
            amount_total=session.amount_total or 0,
            currency=(session.currency or self._settings.base_currency).lower(),
            payment_intent_id=payment_intent,
            customer_email=session.customer_email
            or getattr(session.customer_details, "email", None),
        )


class CheckoutService:
    """Checkout flow on top of the gateway and the ledger.

    Usage:
        service = CheckoutService(gateway, ledger)
        result = service.start_checkout("APP-123", Decimal("150"), "aed")
        status = service.check_status(result.session_id)
    """

    def __init__(self, gateway: CheckoutSessionGateway, ledger: ApplicationPaymentLedger) -> None:
        self.gateway = gateway
        self.ledger = ledger

    def start_checkout(
        self,
        application_id: str | None,
        amount: Decimal | int | float | str,
        currency: str | None = None,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> CheckoutResult | PaymentFailure:
        """Create a checkout session and attach it to an application.

        Without an application id the session is created but not attached;
        it can then only be reconciled by polling.

        Returns:
            CheckoutResult, or PaymentFailure (including when the application
            is unknown or already holds another session).
        """
        metadata = {"application_id": application_id} if application_id else None
        result = self.gateway.create_session(
            amount,
            currency=currency,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        if isinstance(result, PaymentFailure) or not application_id:
            return result

        try:
            record = self.ledger.attach_session(
                application_id,
                result.session_id,
                result.amount,
                result.currency,
            )
        except SessionAlreadyAttached as e:
            # The new session is left to expire on Stripe's side
            logger.warning("%s; new session %s not attached", e, result.session_id)
            return PaymentFailure.from_code(
                ErrorCode.SESSION_ALREADY_ATTACHED,
                details={
                    "application_id": application_id,
                    "session_id": e.existing_session_id,
                },
            )

        if record is None:
            return PaymentFailure.from_code(
                ErrorCode.RECORD_NOT_FOUND,
                f"Application {application_id} not found",
                details={"application_id": application_id},
            )
        return result

    def check_status(self, session_id: str) -> PaymentStatusResult | PaymentFailure:
        """Poll Stripe for a session and promote the application when paid.

        Args:
            session_id: Stripe checkout session id

        Returns:
            PaymentStatusResult with display amounts, or PaymentFailure.
        """
        if not session_id:
            return PaymentFailure.from_code(ErrorCode.SESSION_ID_REQUIRED)

        session = self.gateway.retrieve_session(session_id)
        if isinstance(session, PaymentFailure):
            return session

        application_status: ApplicationStatus | None = None
        if session.is_paid:
            update = self.ledger.update_status(session_id, ApplicationStatus.SUCCESS)
            if update.record is not None:
                application_status = update.record.status
        else:
            record = self.ledger.find_by_session_id(session_id)
            if record is not None:
                application_status = record.status

        log_payment_operation(
            logger,
            "check_status",
            session_id=session_id,
            status=session.payment_status.value,
        )
        return PaymentStatusResult(
            session_id=session.session_id,
            payment_status=session.payment_status,
            payment_intent_id=session.payment_intent_id,
            amount=from_smallest_unit(session.amount_total, session.currency),
            currency=session.currency.upper(),
            customer_email=session.customer_email,
            application_status=application_status,
        )
