"""
Rate Limiting for FastAPI.

The general preset runs as middleware on every non-exempt request; the
tighter presets are route dependencies. Each adds X-RateLimit-* headers
to the response.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from passerelle.config.settings import Settings
from passerelle.domain.exceptions import RateLimitExceededError
from passerelle.infrastructure.rate_limiting.rate_limiter import RateLimiter
from passerelle.presentation.api.middleware.error_handler import (
    passerelle_exception_handler,
)


@dataclass(frozen=True)
class RateLimitPreset:
    """Named request budget."""

    name: str
    settings_field: str

    def max_requests(self, settings: Settings) -> int:
        return getattr(settings, self.settings_field)


GENERAL = RateLimitPreset("general", "RATE_LIMIT_GENERAL")
TRANSFER = RateLimitPreset("transfer", "RATE_LIMIT_TRANSFER_PER_IP")
WALLET = RateLimitPreset("wallet", "RATE_LIMIT_TRANSFER_PER_WALLET")
STRICT = RateLimitPreset("strict", "RATE_LIMIT_STRICT")

EXEMPT_PATHS = {
    "/health/live",
    "/health/ready",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
}


def client_ip(request: Request) -> str:
    """Client IP, preferring the first X-Forwarded-For hop."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce(
    request: Request,
    response: Optional[Response],
    preset: RateLimitPreset,
    identity: str,
) -> None:
    """
    Count the request against a preset.

    Raises:
        RateLimitExceededError: If the preset's budget is spent
    """
    container = request.app.state.container
    settings = container.settings
    if not settings.RATE_LIMIT_ENABLED:
        return

    limiter: RateLimiter = container.rate_limiter
    result = await limiter.acquire(
        key=f"{preset.name}:{identity}",
        window_ms=settings.RATE_LIMIT_WINDOW_MS,
        max_requests=preset.max_requests(settings),
        scope=preset.name,
    )
    if response is not None:
        response.headers.update(result.headers())


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    General per-IP rate limiting.

    Features:
    - Per-IP sliding window (shared via Redis when available)
    - Standard rate limit headers (X-RateLimit-*)
    - 429 Too Many Requests response with Retry-After
    - Health, metrics and docs endpoints are exempt
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        container = request.app.state.container
        settings = container.settings

        if not settings.RATE_LIMIT_ENABLED or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        limiter: RateLimiter = container.rate_limiter
        try:
            result = await limiter.acquire(
                key=f"{GENERAL.name}:ip:{client_ip(request)}",
                window_ms=settings.RATE_LIMIT_WINDOW_MS,
                max_requests=GENERAL.max_requests(settings),
                scope=GENERAL.name,
            )
        except RateLimitExceededError as e:
            return await passerelle_exception_handler(request, e)

        response = await call_next(request)

        # A route-level preset already reported the tighter budget
        if "X-RateLimit-Limit" not in response.headers:
            for key, value in result.headers().items():
                response.headers[key] = value

        return response


# ================================================================
# Route dependencies
# ================================================================


async def transfer_rate_limit(request: Request, response: Response) -> None:
    """Transfer creation budget, per IP."""
    await enforce(request, response, TRANSFER, f"ip:{client_ip(request)}")


async def strict_rate_limit(request: Request, response: Response) -> None:
    """Budget for webhooks and status updates, per IP."""
    await enforce(request, response, STRICT, f"ip:{client_ip(request)}")


async def wallet_rate_limit(request: Request, response: Response) -> None:
    """
    Per-wallet budget.

    Keyed on the `address` path parameter, or on `userAddress` in a JSON
    body. Requests without a wallet are not counted here.
    """
    address = request.path_params.get("address")
    if address is None and request.method in ("POST", "PUT", "PATCH"):
        try:
            payload = await request.json()
        except ValueError:
            # Unreadable body; body validation rejects it
            payload = None
        if isinstance(payload, dict):
            address = payload.get("userAddress")

    if not isinstance(address, str) or not address:
        return
    await enforce(request, response, WALLET, f"wallet:{address.lower()}")
