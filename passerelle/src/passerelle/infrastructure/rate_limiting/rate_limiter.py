"""
Rate Limiter implementation.

Sliding window over a Redis sorted set when the shared store is
reachable, fixed window in local memory otherwise.
"""

import asyncio
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from uuid import uuid4

from redis.exceptions import RedisError

from passerelle.domain.exceptions import RateLimitExceededError
from passerelle.infrastructure.cache.redis_client import RedisClient
from passerelle.infrastructure.monitoring import get_logger, metrics
from passerelle.infrastructure.resilience import CircuitBreaker

logger = get_logger(__name__)

SHARED_STORE_ERRORS = (RedisError, OSError, asyncio.TimeoutError, RuntimeError)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one rate limit check."""

    allowed: bool
    remaining: int
    reset_time: int  # epoch milliseconds
    limit: int

    def retry_after(self, now_ms: int) -> int:
        """Whole seconds until the window resets (at least 1)."""
        return max(1, math.ceil((self.reset_time - now_ms) / 1000))

    def headers(self) -> Dict[str, str]:
        """Standard X-RateLimit-* response headers."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_time / 1000)),
        }


@dataclass
class RateLimitWindow:
    """Per-key counter for the local fixed window."""

    count: int
    reset_time: int


class RateLimiter:
    """
    Request throttle keyed by caller identity.

    Features:
    - Sliding window in Redis (accurate across instances)
    - Fixed window in local memory when Redis is absent or its
      circuit breaker is open
    - Fails open when the shared store errors mid-check
    - Background pruning of expired local windows
    """

    def __init__(
        self,
        redis_client: Optional[RedisClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        key_prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize rate limiter.

        Args:
            redis_client: Shared counter store (None for local only)
            circuit_breaker: Breaker guarding the shared store
            key_prefix: Prefix for Redis keys
            clock: Wall clock in seconds
        """
        self._redis = redis_client
        self._breaker = circuit_breaker or CircuitBreaker(
            name="redis", failure_threshold=3, recovery_timeout=30.0
        )
        self._key_prefix = key_prefix
        self._clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def check(
        self,
        key: str,
        window_ms: int,
        max_requests: int,
    ) -> RateLimitResult:
        """
        Count a request against key and decide whether it is allowed.

        Args:
            key: Caller identity (e.g. "transfer:ip:1.2.3.4")
            window_ms: Window length in milliseconds
            max_requests: Requests allowed per window

        Returns:
            RateLimitResult (allowed=False when over the limit)
        """
        if self._redis is not None and self._breaker.allow_request():
            try:
                result = await self._check_shared(key, window_ms, max_requests)
            except SHARED_STORE_ERRORS as e:
                self._breaker.record_failure()
                metrics.rate_limit_fail_open_total.inc()
                logger.warning(
                    f"Rate limit store error, allowing request: {e}",
                    extra={"rate_limit_key": key},
                )
                now_ms = self._now_ms()
                return RateLimitResult(
                    allowed=True,
                    remaining=max_requests,
                    reset_time=now_ms + window_ms,
                    limit=max_requests,
                )
            self._breaker.record_success()
            return result

        return self._check_local(key, window_ms, max_requests)

    async def acquire(
        self,
        key: str,
        window_ms: int,
        max_requests: int,
        scope: str = "general",
    ) -> RateLimitResult:
        """
        Check and raise if the request is over the limit.

        Raises:
            RateLimitExceededError: With retry_after derived from reset_time
        """
        result = await self.check(key, window_ms, max_requests)
        if not result.allowed:
            metrics.rate_limit_rejections_total.labels(scope=scope).inc()
            raise RateLimitExceededError(
                retry_after=result.retry_after(self._now_ms()),
                limit=result.limit,
                reset_time=result.reset_time,
            )
        return result

    async def _check_shared(
        self,
        key: str,
        window_ms: int,
        max_requests: int,
    ) -> RateLimitResult:
        """Sliding window: prune, add, count and expire in one transaction."""
        redis_key = f"{self._key_prefix}:{key}"
        now_ms = self._now_ms()
        window_start = now_ms - window_ms
        member = f"{now_ms}-{uuid4().hex[:12]}"

        pipe = self._redis.client.pipeline(transaction=True)
        pipe.zremrangebyscore(redis_key, 0, window_start)
        pipe.zadd(redis_key, {member: now_ms})
        pipe.zcard(redis_key)
        pipe.expire(redis_key, math.ceil(window_ms / 1000) + 1)
        _, _, count, _ = await pipe.execute()

        remaining = max_requests - int(count)
        return RateLimitResult(
            allowed=remaining >= 0,
            remaining=max(0, remaining),
            reset_time=now_ms + window_ms,
            limit=max_requests,
        )

    def _check_local(
        self,
        key: str,
        window_ms: int,
        max_requests: int,
    ) -> RateLimitResult:
        """Fixed window approximation in process memory."""
        now_ms = self._now_ms()

        with self._lock:
            window = self._windows.get(key)
            if window is None or window.reset_time <= now_ms:
                window = RateLimitWindow(count=0, reset_time=now_ms + window_ms)
                self._windows[key] = window
            window.count += 1
            count = window.count
            reset_time = window.reset_time

        remaining = max_requests - count
        return RateLimitResult(
            allowed=remaining >= 0,
            remaining=max(0, remaining),
            reset_time=reset_time,
            limit=max_requests,
        )

    def prune_expired(self) -> int:
        """
        Drop local windows whose reset time has passed.

        Returns:
            Number of windows removed
        """
        now_ms = self._now_ms()
        with self._lock:
            expired = [k for k, w in self._windows.items() if w.reset_time <= now_ms]
            for k in expired:
                del self._windows[k]
        return len(expired)

    @property
    def local_window_count(self) -> int:
        with self._lock:
            return len(self._windows)

    async def reset(self, key: str) -> None:
        """Forget all counters for key."""
        with self._lock:
            self._windows.pop(key, None)
        if self._redis is not None and self._redis.is_connected:
            try:
                await self._redis.client.delete(f"{self._key_prefix}:{key}")
            except SHARED_STORE_ERRORS as e:
                logger.warning(f"Failed to reset shared rate limit for {key}: {e}")

    # ================================================================
    # Background cleanup
    # ================================================================

    def start_cleanup(self, interval_seconds: float = 60.0) -> None:
        """Start periodic pruning of local windows."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(
                self._cleanup_loop(interval_seconds),
                name="rate-limit-cleanup",
            )

    async def stop_cleanup(self) -> None:
        """Stop periodic pruning."""
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.prune_expired()
            if removed:
                logger.debug(f"Pruned {removed} expired rate limit windows")
