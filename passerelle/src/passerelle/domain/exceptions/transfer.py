"""
Transfer lifecycle exceptions.

Lifecycle failures carry the recovery action offered to the caller.
"""

from typing import Optional

from passerelle.domain.exceptions.base import PasserelleException
from passerelle.domain.value_objects.recovery_action import RecoveryAction


class InvalidTransitionError(PasserelleException):
    """Raised when a transfer cannot move to the requested state."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            code="INVALID_TRANSITION",
        )
        self.current = current
        self.requested = requested


class CancellationNotAllowedError(InvalidTransitionError):
    """Raised when cancel is requested after a transaction was dispatched."""

    def __init__(self, current: str):
        super().__init__(current, "CANCELLED")
        self.message = (
            f"Cannot cancel while {current}: a transaction is already in flight"
        )
        self.args = (self.message,)


class VerificationFailedError(PasserelleException):
    """Raised when an on-chain check does not match the claimed event."""

    def __init__(self, tx_hash: str, reason: str):
        super().__init__(
            f"Verification failed for {tx_hash}: {reason}",
            code="VERIFICATION_FAILED",
        )
        self.tx_hash = tx_hash
        self.reason = reason


class LifecycleError(PasserelleException):
    """Base for recoverable transfer failures."""

    recovery_action: RecoveryAction = RecoveryAction.TRY_AGAIN

    def __init__(self, message: str, code: str, tx_hash: Optional[str] = None):
        super().__init__(message, code=code)
        self.tx_hash = tx_hash


class BridgeFailedError(LifecycleError):
    """Bridge step failed; funds remain on the source chain."""

    recovery_action = RecoveryAction.TRY_AGAIN

    def __init__(self, message: str = "Bridge transfer failed"):
        super().__init__(message, code="BRIDGE_FAILED")


class DepositFailedError(LifecycleError):
    """Deposit step failed; funds are waiting at the intermediate address."""

    recovery_action = RecoveryAction.RETRY_DEPOSIT

    def __init__(
        self,
        message: str = "Deposit transaction failed",
        tx_hash: Optional[str] = None,
    ):
        super().__init__(message, code="DEPOSIT_FAILED", tx_hash=tx_hash)


class NoGasError(LifecycleError):
    """Deposit step failed because the gas token balance is too low."""

    recovery_action = RecoveryAction.GET_GAS_THEN_RETRY_DEPOSIT

    def __init__(self, message: str = "Insufficient gas token balance"):
        super().__init__(message, code="NO_GAS")


class BelowMinimumError(LifecycleError):
    """Quoted net amount does not clear the minimum deposit."""

    recovery_action = RecoveryAction.INCREASE_AMOUNT

    def __init__(self, net_amount: str, minimum: str):
        super().__init__(
            f"Net amount ${net_amount} is below the ${minimum} minimum",
            code="BELOW_MINIMUM",
        )
