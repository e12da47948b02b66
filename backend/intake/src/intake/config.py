"""Runtime configuration for the payment core.

Settings are read once from the process environment and cached.
Secrets (Stripe API key, webhook signing secret) are NOT part of the
settings object; they are resolved through SecretStore.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "http://localhost:4000"
DEFAULT_BASE_CURRENCY = "aed"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class PaymentSettings(BaseModel):
    """Configuration for Stripe integration and persistence."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment (dev, prod)")
    base_currency: str = Field(
        default=DEFAULT_BASE_CURRENCY,
        description="Currency used when a request does not name one",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Public URL used to build default checkout redirect URLs",
    )
    stripe_timeout_seconds: int = Field(
        default=20,
        ge=10,
        le=30,
        description="Request timeout for a single Stripe round trip",
    )
    stripe_max_network_retries: int = Field(
        default=0,
        ge=0,
        le=0,
        description="Charges are never retried by the core",
    )
    allow_raw_card_data: bool = Field(
        default=True,
        description="Allow the direct card charge path (not PCI compliant)",
    )
    allow_unverified_webhooks: bool = Field(
        default=True,
        description="Accept webhooks without a signing secret (local development only)",
    )
    table_prefix: str = Field(
        default="visa-intake-dev",
        description="DynamoDB table name prefix",
    )

    @field_validator("base_currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def default_success_url(self) -> str:
        """Success redirect; Stripe substitutes {CHECKOUT_SESSION_ID}."""
        return f"{self.base_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def default_cancel_url(self) -> str:
        return f"{self.base_url}/payment/cancel"

    @property
    def unverified_webhooks_permitted(self) -> bool:
        """Unsigned webhooks are never accepted in prod, whatever the flag says."""
        return self.allow_unverified_webhooks and self.environment != "prod"

    @classmethod
    def from_env(cls) -> "PaymentSettings":
        """Build settings from environment variables.

        Returns:
            PaymentSettings populated from ENVIRONMENT, BASE_CURRENCY, BASE_URL,
            STRIPE_TIMEOUT_SECONDS, ALLOW_RAW_CARD_DATA, ALLOW_UNVERIFIED_WEBHOOKS
            and DYNAMODB_TABLE_PREFIX.
        """
        environment = os.environ.get("ENVIRONMENT", "dev")
        return cls(
            environment=environment,
            base_currency=os.environ.get("BASE_CURRENCY", DEFAULT_BASE_CURRENCY),
            base_url=os.environ.get("BASE_URL", DEFAULT_BASE_URL),
            stripe_timeout_seconds=int(os.environ.get("STRIPE_TIMEOUT_SECONDS", "20")),
            # Raw card submission is a dev convenience; prod must opt in explicitly
            allow_raw_card_data=_env_flag("ALLOW_RAW_CARD_DATA", environment != "prod"),
            allow_unverified_webhooks=_env_flag(
                "ALLOW_UNVERIFIED_WEBHOOKS", environment != "prod"
            ),
            table_prefix=os.environ.get(
                "DYNAMODB_TABLE_PREFIX", f"visa-intake-{environment}"
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> PaymentSettings:
    """Get the shared PaymentSettings instance.

    Returns:
        PaymentSettings read from the environment on first call.
    """
    return PaymentSettings.from_env()


def reset_settings() -> None:
    """Clear cached settings (for testing only)."""
    get_settings.cache_clear()
