"""
Circuit breaker pattern for external service resilience.
"""

import asyncio
import time
from enum import Enum
from typing import Callable, Optional

from passerelle.infrastructure.monitoring import metrics


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


_STATE_GAUGE = {
    CircuitState.CLOSED: 0,
    CircuitState.OPEN: 1,
    CircuitState.HALF_OPEN: 2,
}


class CircuitBreakerError(Exception):
    """Raised when circuit is open."""


class CircuitBreaker:
    """
    Circuit breaker for external service calls.

    Tracks failures and stops calling a failing service. After
    recovery_timeout, one trial call is let through (HALF_OPEN).
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        expected_exception: type = Exception,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Service name used in metrics
            failure_threshold: Number of failures before opening circuit
            recovery_timeout: Seconds to wait before trying again (half-open)
            expected_exception: Exception type that counts as failure
            clock: Monotonic time source
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self._clock = clock

        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._state = CircuitState.CLOSED
        self._lock = asyncio.Lock()
        self._publish_state()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Get current failure count."""
        return self._failure_count

    def allow_request(self) -> bool:
        """
        Check whether a call may go through, moving OPEN to HALF_OPEN
        once the recovery timeout has elapsed.
        """
        if self._state == CircuitState.OPEN:
            if not self._should_attempt_reset():
                return False
            self._set_state(CircuitState.HALF_OPEN)
        return True

    def record_success(self) -> None:
        """Reset failure tracking after a successful call."""
        self._failure_count = 0
        self._last_failure_time = None
        if self._state != CircuitState.CLOSED:
            self._set_state(CircuitState.CLOSED)

    def record_failure(self) -> None:
        """Count a failure, opening the circuit at the threshold."""
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if (
            self._state == CircuitState.HALF_OPEN
            or self._failure_count >= self.failure_threshold
        ):
            self._set_state(CircuitState.OPEN)

    async def call(self, func: Callable, *args, **kwargs):
        """
        Execute function with circuit breaker protection.

        Args:
            func: Async function to call
            *args: Positional arguments for function
            **kwargs: Keyword arguments for function

        Returns:
            Function result

        Raises:
            CircuitBreakerError: If circuit is open
            Exception: Original exception from function
        """
        async with self._lock:
            if not self.allow_request():
                raise CircuitBreakerError(
                    f"Circuit breaker '{self.name}' is OPEN. "
                    f"Failures: {self._failure_count}/{self.failure_threshold}. "
                    f"Retry after {self.recovery_timeout}s."
                )

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            async with self._lock:
                self.record_failure()
            raise

        async with self._lock:
            self.record_success()
        return result

    def _should_attempt_reset(self) -> bool:
        """Check if enough time passed to try again."""
        if self._last_failure_time is None:
            return True

        return (self._clock() - self._last_failure_time) >= self.recovery_timeout

    def _set_state(self, state: CircuitState) -> None:
        self._state = state
        self._publish_state()

    def _publish_state(self) -> None:
        metrics.circuit_breaker_state.labels(service=self.name).set(
            _STATE_GAUGE[self._state]
        )

    async def reset(self) -> None:
        """Manually reset circuit breaker to CLOSED state."""
        async with self._lock:
            self._failure_count = 0
            self._last_failure_time = None
            self._set_state(CircuitState.CLOSED)

    def get_stats(self) -> dict:
        """
        Get circuit breaker statistics.

        Returns:
            Dict with state, failure_count, last_failure_time
        """
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self._last_failure_time,
            "recovery_timeout": self.recovery_timeout,
        }
