"""Rate limiting infrastructure."""

from passerelle.infrastructure.rate_limiting.rate_limiter import (
    RateLimiter,
    RateLimitResult,
    RateLimitWindow,
)

__all__ = ["RateLimiter", "RateLimitResult", "RateLimitWindow"]
