"""
Domain exceptions package.
"""

# Base exceptions
from passerelle.domain.exceptions.base import (
    EntityNotFoundError,
    PasserelleException,
    RateLimitExceededError,
    ValidationError,
)

# Blockchain exceptions
from passerelle.domain.exceptions.blockchain import (
    BlockchainError,
    TransactionNotFoundError,
)

# Transfer lifecycle exceptions
from passerelle.domain.exceptions.transfer import (
    BelowMinimumError,
    BridgeFailedError,
    CancellationNotAllowedError,
    DepositFailedError,
    InvalidTransitionError,
    LifecycleError,
    NoGasError,
    VerificationFailedError,
)

__all__ = [
    "PasserelleException",
    "EntityNotFoundError",
    "ValidationError",
    "RateLimitExceededError",
    "BlockchainError",
    "TransactionNotFoundError",
    "InvalidTransitionError",
    "CancellationNotAllowedError",
    "VerificationFailedError",
    "LifecycleError",
    "BridgeFailedError",
    "DepositFailedError",
    "NoGasError",
    "BelowMinimumError",
]
