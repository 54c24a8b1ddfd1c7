"""API routes."""

from passerelle.presentation.api.routes import health, transfers

__all__ = ["health", "transfers"]
