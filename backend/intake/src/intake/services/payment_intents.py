"""Direct card charges and tokenized payment intents.

charge() submits raw card data to Stripe and confirms immediately. That
puts this service in PCI scope, so it only runs when allow_raw_card_data
is enabled (on by default outside prod). create_intent() is the tokenized
alternative: the browser confirms the intent with Stripe.js.

Nothing here retries. A charge retried without an idempotency key can
double-charge, so retry policy belongs to the caller.
"""

from decimal import Decimal

import stripe
from pydantic import ValidationError
from stripe import StripeClient

from intake.config import PaymentSettings
from intake.models.errors import ErrorCode, PaymentFailure
from intake.models.payment import ChargeResult, PaymentRequest
from intake.utils.logging import get_logger, log_payment_operation, mask_card_number

from .currency import (
    from_smallest_unit,
    is_below_minimum,
    minimum_amount,
    normalize_currency,
    to_decimal,
    to_smallest_unit,
)
from .stripe_service import classify_stripe_error

logger = get_logger(__name__)


def minimum_amount_failure(amount: Decimal, currency: str) -> PaymentFailure:
    """Build the ValidationError result for an amount below the currency minimum."""
    minimum = minimum_amount(currency)
    return PaymentFailure.from_code(
        ErrorCode.VALIDATION_ERROR,
        f"Amount must be at least {minimum} {currency.upper()}",
        amount=amount,
        currency=currency,
        details={"minimum": str(minimum)},
    )


def invalid_card_failure(
    error: ValidationError, amount: Decimal, currency: str
) -> PaymentFailure:
    """Build the ValidationError result for a malformed card payload.

    Only field names are reported; submitted card values never leave here.
    """
    fields = sorted({".".join(str(part) for part in err["loc"]) for err in error.errors()})
    return PaymentFailure.from_code(
        ErrorCode.VALIDATION_ERROR,
        f"Invalid card details: {', '.join(fields)}",
        amount=amount,
        currency=currency,
        details={"fields": ",".join(fields)},
    )


class PaymentIntentGateway:
    """Gateway for Stripe PaymentIntents.

    Usage:
        gateway = PaymentIntentGateway(client=get_stripe_client(), settings=get_settings())
        result = gateway.charge(Decimal("20"), "4242 4242 4242 4242", 12, 2030, "123", "usd")
        if isinstance(result, PaymentFailure):
            ...
    """

    def __init__(self, client: StripeClient, settings: PaymentSettings) -> None:
        self._client = client
        self._settings = settings

    @property
    def return_url(self) -> str:
        """URL Stripe sends the customer to after a redirect-based authentication."""
        return f"{self._settings.base_url}/payment/return"

    def charge(
        self,
        amount: Decimal | int | float | str,
        card_number: str,
        exp_month: int | str,
        exp_year: int | str,
        cvc: str,
        currency: str | None = None,
    ) -> ChargeResult | PaymentFailure:
        """Create and confirm a PaymentIntent with raw card data.

        Args:
            amount: Amount in display units
            card_number: Card number, whitespace allowed
            exp_month: Expiry month (1-12)
            exp_year: Expiry year (YYYY)
            cvc: Card security code
            currency: ISO currency code, defaults to the base currency

        Returns:
            ChargeResult on success, PaymentFailure otherwise.
        """
        value = to_decimal(amount)
        code = normalize_currency(currency, self._settings.base_currency)

        if is_below_minimum(value, code):
            return minimum_amount_failure(value, code)

        try:
            request = PaymentRequest(
                amount=value,
                currency=code,
                card={
                    "number": card_number,
                    "exp_month": exp_month,
                    "exp_year": exp_year,
                    "cvc": cvc,
                },
            )
        except ValidationError as e:
            return invalid_card_failure(e, value, code)
        card = request.card

        if not self._settings.allow_raw_card_data:
            log_payment_operation(
                logger,
                "charge",
                amount=value,
                currency=code,
                error="raw card data disabled by configuration",
            )
            return PaymentFailure.from_code(
                ErrorCode.PROVIDER_REJECTED,
                "Direct card charges are disabled for this environment",
                amount=value,
                currency=code,
            )

        log_payment_operation(
            logger,
            "charge",
            amount=value,
            currency=code,
            card=mask_card_number(card.number),
        )

        try:
            intent = self._client.payment_intents.create(
                params={
                    "amount": to_smallest_unit(value, code),
                    "currency": code,
                    "payment_method_data": {
                        "type": "card",
                        "card": {
                            "number": card.number,
                            "exp_month": card.exp_month,
                            "exp_year": card.exp_year,
                            "cvc": card.cvc,
                        },
                    },
                    "confirm": True,
                    "return_url": self.return_url,
                }
            )
        except stripe.StripeError as e:
            failure = classify_stripe_error(
                e,
                fallback=ErrorCode.UNKNOWN_PROVIDER_ERROR,
                amount=value,
                currency=code,
            )
            log_payment_operation(
                logger,
                "charge",
                amount=value,
                currency=code,
                error=failure.message,
                error_code=failure.error_code.value,
            )
            return failure

        log_payment_operation(
            logger,
            "charge",
            amount=value,
            currency=code,
            status=intent.status,
            intent_id=intent.id,
        )
        return self._to_result(intent)

    def create_intent(
        self,
        amount: Decimal | int | float | str,
        currency: str | None = None,
    ) -> ChargeResult | PaymentFailure:
        """Create an unconfirmed PaymentIntent for client-side confirmation.

        Args:
            amount: Amount in display units
            currency: ISO currency code, defaults to the base currency

        Returns:
            ChargeResult carrying the client secret, or PaymentFailure.
        """
        value = to_decimal(amount)
        code = normalize_currency(currency, self._settings.base_currency)

        if is_below_minimum(value, code):
            return minimum_amount_failure(value, code)

        try:
            intent = self._client.payment_intents.create(
                params={
                    "amount": to_smallest_unit(value, code),
                    "currency": code,
                    "automatic_payment_methods": {"enabled": True},
                }
            )
        except stripe.StripeError as e:
            failure = classify_stripe_error(
                e,
                fallback=ErrorCode.UNKNOWN_PROVIDER_ERROR,
                amount=value,
                currency=code,
            )
            log_payment_operation(
                logger, "create_intent", amount=value, currency=code, error=failure.message
            )
            return failure

        log_payment_operation(
            logger,
            "create_intent",
            amount=value,
            currency=code,
            status=intent.status,
            intent_id=intent.id,
        )
        return self._to_result(intent)

    @staticmethod
    def _to_result(intent: stripe.PaymentIntent) -> ChargeResult:
        payment_method = intent.payment_method
        if payment_method is not None and not isinstance(payment_method, str):
            payment_method = payment_method.id
        return ChargeResult(
            intent_id=intent.id,
            status=intent.status,
            amount=from_smallest_unit(intent.amount, intent.currency),
            currency=intent.currency.upper(),
            client_secret=intent.client_secret,
            payment_method_id=payment_method,
        )
