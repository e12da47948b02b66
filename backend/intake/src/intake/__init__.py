"""Payment core for the visa-application intake backend.

Subpackages:
- models: Pydantic models for applications, checkout sessions, webhook events, errors
- services: Currency policy, Stripe gateways, ledger and webhook reconciliation
- utils: Structured logging helpers
"""

__version__ = "0.1.0"
