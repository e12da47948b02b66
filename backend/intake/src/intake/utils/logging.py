"""Logging for the payment core.

Every line carries the correlation id of the request that produced it.
Payment and webhook helpers render their context as ``key=value`` pairs
and also attach it to the record, so a JSON handler can pick it up.

Usage:
    from intake.utils.logging import get_logger, set_correlation_id

    set_correlation_id(request.headers.get("X-Correlation-ID"))
    logger = get_logger(__name__)
    log_payment_operation(logger, "charge", amount=20, currency="aed")

Card numbers must go through mask_card_number() before they are logged.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"

_request_correlation_id: ContextVar[str | None] = ContextVar(
    "intake_correlation_id", default=None
)

# Webhook results that deserve operator attention
_WARNING_RESULTS = frozenset({"duplicate", "skipped", "not_found", "unverified"})


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context, generating one if needed."""
    value = correlation_id or uuid.uuid4().hex
    _request_correlation_id.set(value)
    return value


def get_correlation_id() -> str | None:
    return _request_correlation_id.get()


def clear_correlation_id() -> None:
    _request_correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Stamps record.correlation_id from the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes each line with ``[correlation-id]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None) or (
            get_correlation_id() or NO_CORRELATION_ID
        )
        return f"[{correlation_id}] {super().format(record)}"


def get_logger(name: str) -> logging.Logger:
    """logging.getLogger() with the correlation filter attached once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def configure_logging(level: int = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Calling it again is a no-op apart from updating the level.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


def mask_card_number(card_number: str) -> str:
    """Reduce a card number to its last four digits, e.g. "****4242"."""
    digits = "".join(card_number.split())
    return "****" + digits[-4:] if len(digits) >= 4 else "****"


def _render(headline: str, context: dict[str, Any]) -> str:
    pairs = " ".join(f"{key}={value}" for key, value in context.items())
    return f"{headline} | {pairs}" if pairs else headline


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    session_id: str | None = None,
    application_id: str | None = None,
    amount: Any | None = None,
    currency: str | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Emit one line for a payment operation.

    Logged at ERROR when ``error`` is set, INFO otherwise. Fields left as
    None are omitted.

    Args:
        logger: Logger to write to
        operation: Operation name ("charge", "create_checkout_session", ...)
        session_id: Stripe checkout session id
        application_id: Visa application id
        amount: Amount in display units
        currency: ISO currency code
        status: Payment or application status
        error: Failure description
        **extra: Further context fields (intent_id, card, ...)
    """
    fields = {
        "session_id": session_id,
        "application_id": application_id,
        "amount": None if amount is None else str(amount),
        "currency": currency,
        "status": status,
        "error": error,
        **extra,
    }
    context = {key: value for key, value in fields.items() if value is not None}

    logger.log(
        logging.ERROR if error else logging.INFO,
        _render(f"Payment operation: {operation}", context),
        extra={"operation": operation, **context},
    )


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str | None,
    *,
    session_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Emit one line for a webhook delivery.

    duplicate, skipped, not_found and unverified results log at WARNING,
    error at ERROR, anything else at INFO.
    """
    fields = {"result": result, "session_id": session_id, "error": error, **extra}
    context = {key: value for key, value in fields.items() if value is not None}

    if result == "error":
        level = logging.ERROR
    elif result in _WARNING_RESULTS:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger.log(
        level,
        _render(f"Webhook event: {event_type} ({event_id})", context),
        extra={"event_type": event_type, "event_id": event_id, **context},
    )
