"""API routes package.

Routers are organized by concern:

- payments: Card charges, payment intents, checkout sessions, status checks
- webhooks: Stripe webhook deliveries

All routers are registered in main.py with /api prefix.
"""

from api.routes.payments import router as payments_router
from api.routes.webhooks import router as webhooks_router

__all__ = [
    "payments_router",
    "webhooks_router",
]
