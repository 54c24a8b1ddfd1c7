"""
Base domain exceptions.
"""


class PasserelleException(Exception):
    """Base exception for all Passerelle domain errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class EntityNotFoundError(PasserelleException):
    """Raised when entity is not found in repository."""

    def __init__(self, entity_type: str, entity_id: str):
        message = f"{entity_type} with ID {entity_id} not found"
        super().__init__(message, code="ENTITY_NOT_FOUND")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(PasserelleException):
    """Raised when input or entity validation fails."""

    def __init__(self, field: str, reason: str):
        message = f"Validation failed for {field}: {reason}"
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.reason = reason


class RateLimitExceededError(PasserelleException):
    """Raised when a caller exceeds its request budget."""

    def __init__(self, retry_after: int, limit: int, reset_time: int):
        """
        Initialize rate limit error.

        Args:
            retry_after: Seconds until the window resets
            limit: Maximum requests allowed in the window
            reset_time: Window reset time (epoch milliseconds)
        """
        super().__init__(
            f"Too many requests. Retry after {retry_after}s.",
            code="RATE_LIMITED",
        )
        self.retry_after = retry_after
        self.limit = limit
        self.reset_time = reset_time
