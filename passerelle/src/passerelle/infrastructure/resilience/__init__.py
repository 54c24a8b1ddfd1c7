"""Resilience primitives."""

from passerelle.infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
)

__all__ = ["CircuitBreaker", "CircuitBreakerError", "CircuitState"]
