"""FastAPI exception handlers for converting PaymentError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: user- or operator-correctable request problems
- 404 Not Found: unknown application
- 409 Conflict: application already has a checkout session
- 502 Bad Gateway: Stripe failed or is unreachable
- 503 Service Unavailable: Stripe credentials or the webhook signing secret
  are unavailable

The webhook route does not use these handlers; it answers Stripe with a
plain-text 400 itself.

Usage:
    from api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from intake.models.errors import ErrorCode, PaymentError
from intake.services.secrets import SecretStoreError
from intake.services.stripe_service import StripeServiceError
from intake.utils.logging import get_logger

logger = get_logger(__name__)

# Map ErrorCode to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: HTTP_400_BAD_REQUEST,
    ErrorCode.CARD_DECLINED: HTTP_400_BAD_REQUEST,
    ErrorCode.PROVIDER_REJECTED: HTTP_400_BAD_REQUEST,
    ErrorCode.SIGNATURE_VERIFICATION_FAILED: HTTP_400_BAD_REQUEST,
    ErrorCode.PAYLOAD_PARSE_FAILED: HTTP_400_BAD_REQUEST,
    ErrorCode.SESSION_ID_REQUIRED: HTTP_400_BAD_REQUEST,
    ErrorCode.RECORD_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.SESSION_ALREADY_ATTACHED: HTTP_409_CONFLICT,
    ErrorCode.SESSION_CREATION_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.UNKNOWN_PROVIDER_ERROR: HTTP_502_BAD_GATEWAY,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode.

    Args:
        code: The ErrorCode to map

    Returns:
        HTTP status code, defaults to 400 if not explicitly mapped.
    """
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    """Convert a PaymentError to a JSON response with the mapped status."""
    return JSONResponse(
        status_code=get_http_status_for_error(exc.code),
        content=exc.failure.model_dump(mode="json"),
    )


async def stripe_config_error_handler(request: Request, exc: StripeServiceError) -> JSONResponse:
    """Answer 503 when the Stripe client cannot be built."""
    logger.error("Stripe is not configured: %s", exc)
    return JSONResponse(
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": False,
            "error_code": "ERR_CONFIG",
            "message": "Payment provider is not configured",
            "recovery": "Set STRIPE_SECRET_KEY or the SSM parameter for this environment",
            "details": None,
        },
    )


async def secret_store_error_handler(request: Request, exc: SecretStoreError) -> JSONResponse:
    """Answer 503 when a secret cannot be resolved."""
    logger.error("Secret unavailable: %s", exc)
    return JSONResponse(
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": False,
            "error_code": "ERR_CONFIG",
            "message": "Payment secrets are unavailable",
            "recovery": "Set STRIPE_WEBHOOK_SECRET or check SSM access for this environment",
            "details": None,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(PaymentError, payment_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StripeServiceError, stripe_config_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SecretStoreError, secret_store_error_handler)  # type: ignore[arg-type]
