"""Secret retrieval for Stripe credentials.

Secrets are read from the process environment first and fall back to
AWS SSM Parameter Store SecureString parameters:

    STRIPE_SECRET_KEY      -> /visa-intake/{environment}/stripe/secret_key
    STRIPE_WEBHOOK_SECRET  -> /visa-intake/{environment}/stripe/webhook_secret
"""

import os
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from intake.config import get_settings
from intake.utils.logging import get_logger

logger = get_logger(__name__)

STRIPE_SECRET_KEY = "stripe/secret_key"
STRIPE_WEBHOOK_SECRET = "stripe/webhook_secret"

_ENV_NAMES: dict[str, str] = {
    STRIPE_SECRET_KEY: "STRIPE_SECRET_KEY",
    STRIPE_WEBHOOK_SECRET: "STRIPE_WEBHOOK_SECRET",
}


class SecretStoreError(Exception):
    """Raised when a required secret cannot be retrieved."""

    pass


class SecretStore:
    """Environment-first secret lookup with SSM Parameter Store fallback.

    Features:
    - Environment variables win, so local runs need no AWS access
    - SecureString parameters are decrypted and cached in-process
    - Environment-aware parameter paths

    Usage:
        secrets = SecretStore(environment="dev")
        api_key = secrets.get_secret(STRIPE_SECRET_KEY)
    """

    def __init__(self, environment: str, ssm_client: Any | None = None) -> None:
        """Initialize the store.

        Args:
            environment: Environment name used in parameter paths
            ssm_client: Optional boto3 SSM client (created lazily otherwise)
        """
        self._environment = environment
        self._ssm = ssm_client
        self._cache: dict[str, str] = {}

    def _parameter_path(self, name: str) -> str:
        return f"/visa-intake/{self._environment}/{name}"

    def _get_ssm(self) -> Any:
        if self._ssm is None:
            self._ssm = boto3.client("ssm")
        return self._ssm

    def get_secret(self, name: str, *, required: bool = True) -> str | None:
        """Resolve a secret by logical name.

        Args:
            name: Logical secret name (e.g. STRIPE_SECRET_KEY)
            required: Raise if the secret is absent everywhere

        Returns:
            The secret value, or None if optional and not configured.

        Raises:
            SecretStoreError: If a required secret is missing, or SSM cannot be
                reached or read for any secret.
        """
        env_name = _ENV_NAMES.get(name)
        if env_name:
            value = os.environ.get(env_name)
            if value:
                return value

        if name in self._cache:
            logger.debug("Secret cache hit for %s", name)
            return self._cache[name]

        path = self._parameter_path(name)
        try:
            logger.info("Fetching SSM parameter: %s", path)
            response = self._get_ssm().get_parameter(Name=path, WithDecryption=True)
            value = response["Parameter"]["Value"]
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                if not required:
                    logger.info("Optional secret %s not configured", name)
                    return None
                raise SecretStoreError(
                    f"Secret {name} not set in {env_name or 'environment'} or SSM ({path})"
                ) from e
            if error_code == "AccessDeniedException":
                raise SecretStoreError(
                    f"Access denied to SSM parameter: {path}. "
                    "Check IAM permissions for ssm:GetParameter."
                ) from e
            raise SecretStoreError(f"Failed to retrieve SSM parameter {path}: {e}") from e
        except BotoCoreError as e:
            # Outages raise even for optional secrets
            raise SecretStoreError(f"Failed to retrieve SSM parameter {path}: {e}") from e

        self._cache[name] = value
        return value

    def clear_cache(self) -> None:
        """Clear all cached parameters."""
        self._cache.clear()


@lru_cache(maxsize=1)
def get_secret_store() -> SecretStore:
    """Get the shared SecretStore instance.

    Returns:
        SecretStore bound to the configured environment.
    """
    return SecretStore(environment=get_settings().environment)
