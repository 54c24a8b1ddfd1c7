"""API middleware."""

from passerelle.presentation.api.middleware.error_handler import (
    passerelle_exception_handler,
    request_validation_exception_handler,
)
from passerelle.presentation.api.middleware.metrics_middleware import (
    MetricsMiddleware,
)
from passerelle.presentation.api.middleware.rate_limit_middleware import (
    RateLimitMiddleware,
    strict_rate_limit,
    transfer_rate_limit,
    wallet_rate_limit,
)
from passerelle.presentation.api.middleware.request_id_middleware import (
    RequestIDMiddleware,
)

__all__ = [
    "passerelle_exception_handler",
    "request_validation_exception_handler",
    "MetricsMiddleware",
    "RateLimitMiddleware",
    "RequestIDMiddleware",
    "strict_rate_limit",
    "transfer_rate_limit",
    "wallet_rate_limit",
]
