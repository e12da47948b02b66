"""FastAPI surface for the visa-intake payment service."""
