"""
Global error handling middleware.
"""

import math

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from passerelle.domain.exceptions import (
    LifecycleError,
    PasserelleException,
    RateLimitExceededError,
)

STATUS_CODE_MAP = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "ENTITY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
    "VERIFICATION_FAILED": status.HTTP_400_BAD_REQUEST,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "TRANSACTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "BLOCKCHAIN_ERROR": status.HTTP_502_BAD_GATEWAY,
    "CIRCUIT_OPEN": status.HTTP_503_SERVICE_UNAVAILABLE,
    "TRANSFER_API_ERROR": status.HTTP_502_BAD_GATEWAY,
}


async def passerelle_exception_handler(
    request: Request, exc: PasserelleException
) -> JSONResponse:
    """
    Handle Passerelle domain exceptions.

    Converts domain exceptions to appropriate HTTP responses.
    """
    content = {"error": exc.code, "message": exc.message}
    headers = {}

    if isinstance(exc, LifecycleError):
        status_code = status.HTTP_409_CONFLICT
        content["recoveryAction"] = exc.recovery_action.value
    else:
        status_code = STATUS_CODE_MAP.get(
            exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, RateLimitExceededError):
        headers["Retry-After"] = str(exc.retry_after)
        headers["X-RateLimit-Limit"] = str(exc.limit)
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Reset"] = str(math.ceil(exc.reset_time / 1000))

    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies and parameters as VALIDATION_ERROR."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "VALIDATION_ERROR", "message": message},
    )
