"""
Unit tests for CircuitBreaker.
"""

import pytest

from passerelle.infrastructure.resilience import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


async def _fail():
    raise ConnectionError("rpc down")


async def _ok():
    return "ok"


class TestCircuitBreaker:
    async def test_opens_at_threshold(self):
        breaker = CircuitBreaker(name="test", failure_threshold=2)

        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(_fail)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerError):
            await breaker.call(_ok)

    async def test_half_open_after_timeout(self):
        clock = FakeClock()
        breaker = CircuitBreaker(
            name="test", failure_threshold=1, recovery_timeout=10, clock=clock
        )
        with pytest.raises(ConnectionError):
            await breaker.call(_fail)

        clock.now = 11
        assert await breaker.call(_ok) == "ok"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    async def test_failed_trial_reopens(self):
        clock = FakeClock()
        breaker = CircuitBreaker(
            name="test", failure_threshold=3, recovery_timeout=10, clock=clock
        )
        for _ in range(3):
            breaker.record_failure()

        clock.now = 20
        assert breaker.allow_request()
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert not breaker.allow_request()

    async def test_unexpected_exception_does_not_count(self):
        breaker = CircuitBreaker(
            name="test", failure_threshold=1, expected_exception=ConnectionError
        )

        async def _bug():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await breaker.call(_bug)

        assert breaker.state == CircuitState.CLOSED

    async def test_reset(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1)
        breaker.record_failure()

        await breaker.reset()

        stats = breaker.get_stats()
        assert stats["state"] == "closed"
        assert stats["failure_count"] == 0
