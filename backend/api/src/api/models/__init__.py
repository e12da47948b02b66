"""API-specific request/response models.

Domain models (ChargeResult, CheckoutResult, PaymentStatusResult, ...) live
in intake.models and are reused here as response schemas.

Modules:
- payments: Payment, checkout and webhook request/response models
"""

__all__: list[str] = []
