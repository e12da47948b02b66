"""Webhook endpoint for Stripe checkout events.

Handles:
- checkout.session.completed: application moves to 'success'
- checkout.session.async_payment_failed: application moves to 'failed'
- every other event type is acknowledged and ignored

The endpoint does not require authentication; deliveries are authenticated
by the Stripe-Signature header. Stripe treats any non-2xx answer as a
failed delivery and retries it, so only signature and parse failures are
answered with 400.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.status import HTTP_400_BAD_REQUEST

from api.dependencies import get_webhook_reconciler
from api.models.payments import WebhookResponse
from intake.models.errors import PayloadParseFailed, SignatureVerificationFailed
from intake.services.webhook_handler import WebhookReconciler
from intake.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payment", tags=["webhooks"])

SIGNATURE_HEADER = "Stripe-Signature"


@router.post(
    "/webhook",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe checkout events.

**No authentication required** - signature is verified using the Stripe
webhook signing secret when one is configured.

**Idempotent**: redelivered events return 200 with 'duplicate', and terminal
application statuses are never changed.
""",
    response_model=WebhookResponse,
    responses={
        200: {
            "description": "Event received and processed (or acknowledged)",
            "model": WebhookResponse,
        },
        400: {
            "description": "Invalid signature or unparseable body",
            "content": {"text/plain": {"example": "Webhook Error: Failed to parse body"}},
        },
        503: {"description": "Signing secret unavailable; Stripe retries the delivery"},
    },
)
async def handle_stripe_webhook(
    request: Request,
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
) -> WebhookResponse | PlainTextResponse:
    """Verify and apply one Stripe webhook delivery."""
    # Raw bytes are required for signature verification
    payload = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        outcome = reconciler.handle(payload, signature)
    except (SignatureVerificationFailed, PayloadParseFailed) as e:
        logger.warning("Webhook rejected: %s", e)
        return PlainTextResponse(f"Webhook Error: {e}", status_code=HTTP_400_BAD_REQUEST)

    return WebhookResponse(
        received=True,
        event_id=outcome.event_id,
        event_type=outcome.event_type,
        processing_result=outcome.processing_result,
    )
