"""Payment endpoints for visa application fees.

Provides REST endpoints for:
- Charging a card directly (non-production accounts only)
- Creating a tokenized PaymentIntent for client-side confirmation
- Creating a Stripe Checkout session, optionally attached to an application
- Checking the status of a checkout session after redirect

Gateway failures come back as PaymentFailure values and are raised here as
PaymentError so the registered handler can render them.
"""

from fastapi import APIRouter, Depends, Query
from starlette.status import HTTP_200_OK, HTTP_201_CREATED

from api.dependencies import (
    get_checkout_service,
    get_payment_intent_gateway,
)
from api.models.payments import (
    CheckoutResponse,
    CreateCheckoutRequest,
    CreateIntentRequest,
    ProcessPaymentRequest,
)
from intake.models.errors import PaymentError, PaymentFailure
from intake.models.payment import ChargeResult, PaymentStatusResult
from intake.services.checkout import CheckoutService
from intake.services.payment_intents import PaymentIntentGateway

router = APIRouter(prefix="/payment", tags=["payments"])


@router.post(
    "/process",
    summary="Charge a card",
    description="""
Create and confirm a PaymentIntent with card details in one request.

**Not PCI-safe.** Disabled when `ALLOW_RAW_CARD_DATA` is false (the default
in prod). Use `/payment/intent` or `/payment/checkout` instead.

**Notes:**
- Amount is in display units (20 AED, 12.50 USD)
- Currency defaults to the configured base currency
- Declines return the provider's message verbatim
""",
    response_model=ChargeResult,
    status_code=HTTP_200_OK,
    responses={
        400: {"description": "Below minimum, card declined, or raw card data disabled"},
        502: {"description": "Stripe failed to process the request"},
    },
)
async def process_payment(
    body: ProcessPaymentRequest,
    gateway: PaymentIntentGateway = Depends(get_payment_intent_gateway),
) -> ChargeResult:
    """Charge the card in the request body."""
    result = gateway.charge(
        amount=body.amount,
        card_number=body.card_number,
        exp_month=body.exp_month,
        exp_year=body.exp_year,
        cvc=body.cvc,
        currency=body.currency,
    )
    if isinstance(result, PaymentFailure):
        raise PaymentError(result)
    return result


@router.post(
    "/intent",
    summary="Create payment intent",
    description="""
Create an unconfirmed PaymentIntent and return its client secret.

The browser confirms the payment with Stripe.js, so card data never reaches
this service.
""",
    response_model=ChargeResult,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Amount below the currency minimum"},
        502: {"description": "Stripe failed to create the intent"},
    },
)
async def create_payment_intent(
    body: CreateIntentRequest,
    gateway: PaymentIntentGateway = Depends(get_payment_intent_gateway),
) -> ChargeResult:
    """Create a PaymentIntent for client-side confirmation."""
    result = gateway.create_intent(amount=body.amount, currency=body.currency)
    if isinstance(result, PaymentFailure):
        raise PaymentError(result)
    return result


@router.post(
    "/checkout",
    summary="Create checkout session",
    description="""
Create a Stripe Checkout session and return the hosted payment page URL.

When `application_id` is given, the session id is stored on the application
so the webhook can reconcile it later. An application holds at most one
session id; a second attempt answers 409.
""",
    response_model=CheckoutResponse,
    status_code=HTTP_200_OK,
    responses={
        400: {"description": "Amount below the currency minimum"},
        404: {"description": "Application not found"},
        409: {"description": "Application already has a checkout session"},
        502: {"description": "Stripe failed to create the session"},
    },
)
async def create_checkout(
    body: CreateCheckoutRequest,
    service: CheckoutService = Depends(get_checkout_service),
) -> CheckoutResponse:
    """Create a checkout session, attaching it to the application if given."""
    result = service.start_checkout(
        application_id=body.application_id,
        amount=body.amount,
        currency=body.currency,
        success_url=body.success_url,
        cancel_url=body.cancel_url,
    )
    if isinstance(result, PaymentFailure):
        raise PaymentError(result)
    return CheckoutResponse(**result.model_dump())


@router.get(
    "/success",
    summary="Check checkout session status",
    description="""
Read the session from Stripe and return its payment status.

If the session is paid, the owning application is promoted to `success`.
This races safely with the webhook: terminal statuses are never overwritten.
""",
    response_model=PaymentStatusResult,
    responses={
        400: {"description": "session_id missing"},
        502: {"description": "Stripe could not return the session"},
    },
)
async def payment_success(
    session_id: str = Query(default="", description="Stripe checkout session id"),
    service: CheckoutService = Depends(get_checkout_service),
) -> PaymentStatusResult:
    """Check a checkout session after the customer is redirected back."""
    result = service.check_status(session_id)
    if isinstance(result, PaymentFailure):
        raise PaymentError(result)
    return result
