"""FastAPI application for the visa-intake payment service.

This package provides REST endpoints for:
- Health checks
- Card charges, payment intents and checkout sessions
- Stripe webhook deliveries

Locally the app runs under uvicorn; on AWS it runs behind API Gateway via
the Mangum handler.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from api.exceptions import register_exception_handlers
from api.middleware.correlation import CorrelationIdMiddleware
from api.routes.payments import router as payments_router
from api.routes.webhooks import router as webhooks_router
from intake import __version__
from intake.utils.logging import configure_logging, get_logger

configure_logging(logging.INFO)
logger = get_logger(__name__)

app = FastAPI(
    title="Visa Intake Payment API",
    description="Stripe payments and webhook reconciliation for visa applications",
    version=__version__,
)

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"

# Browser origins allowed to call the API (comma separated)
cors_origins = [
    origin.strip()
    for origin in os.environ.get("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

# Every route lives under /api
app.include_router(payments_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Liveness check at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "visa-intake-payments",
    }


# API Gateway entry point
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 4000, reload: bool = True) -> None:
    """Serve the API with uvicorn on port 4000, the port BASE_URL points at.

    With reload on, uvicorn watches both source trees and imports the app by
    dotted path.
    """
    import uvicorn

    if reload:
        uvicorn.run(
            "api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["backend/api/src", "backend/intake/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
