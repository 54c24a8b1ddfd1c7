"""
Transfer lifecycle state machine.

Pure transitions over an immutable LifecycleState. Every function
returns a new state or raises InvalidTransitionError; side effects live
in the orchestrator.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from passerelle.application.lifecycle.safety_guard import (
    MINIMUM_DEPOSIT_USD,
    SafetyGuardPayload,
)
from passerelle.domain.exceptions import (
    BelowMinimumError,
    BridgeFailedError,
    CancellationNotAllowedError,
    DepositFailedError,
    InvalidTransitionError,
    LifecycleError,
    NoGasError,
)
from passerelle.domain.services.i_route_engine import RouteQuote
from passerelle.domain.value_objects.recovery_action import RecoveryAction


class Phase(str, Enum):
    """Client-side progress of one transfer attempt."""

    IDLE = "IDLE"
    QUOTING = "QUOTING"
    SAFETY_GUARD = "SAFETY_GUARD"
    BRIDGING = "BRIDGING"
    DEPOSITING = "DEPOSITING"
    SUCCESS = "SUCCESS"


class LifecycleErrorCode(str, Enum):
    """Error channel, orthogonal to the phase."""

    BELOW_MINIMUM = "BELOW_MINIMUM"
    NO_GAS = "NO_GAS"
    BRIDGE_FAILED = "BRIDGE_FAILED"
    DEPOSIT_FAILED = "DEPOSIT_FAILED"


RECOVERY_ACTIONS = {
    LifecycleErrorCode.BRIDGE_FAILED: RecoveryAction.TRY_AGAIN,
    LifecycleErrorCode.DEPOSIT_FAILED: RecoveryAction.RETRY_DEPOSIT,
    LifecycleErrorCode.NO_GAS: RecoveryAction.GET_GAS_THEN_RETRY_DEPOSIT,
    LifecycleErrorCode.BELOW_MINIMUM: RecoveryAction.INCREASE_AMOUNT,
}

_DEPOSIT_ERRORS = (LifecycleErrorCode.DEPOSIT_FAILED, LifecycleErrorCode.NO_GAS)


@dataclass(frozen=True)
class LifecycleState:
    """
    Snapshot of one transfer attempt.

    realized_amount is the bridged amount confirmed on-chain; it
    survives deposit failures so a retry never re-runs the bridge.
    """

    phase: Phase = Phase.IDLE
    error: Optional[LifecycleErrorCode] = None
    error_message: Optional[str] = None
    quote: Optional[RouteQuote] = None
    guard: Optional[SafetyGuardPayload] = None
    risk_acknowledged: bool = False
    transfer_id: Optional[UUID] = None
    realized_amount: Optional[int] = None
    bridge_tx_hash: Optional[str] = None
    deposit_tx_hash: Optional[str] = None

    @property
    def can_cancel(self) -> bool:
        return self.phase in (Phase.IDLE, Phase.SAFETY_GUARD)

    @property
    def can_retry_deposit(self) -> bool:
        return self.phase == Phase.DEPOSITING and self.error in _DEPOSIT_ERRORS

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        action = recovery_action(self)
        return {
            "phase": self.phase.value,
            "error": self.error.value if self.error else None,
            "error_message": self.error_message,
            "guard": self.guard.to_dict() if self.guard else None,
            "risk_acknowledged": self.risk_acknowledged,
            "transfer_id": str(self.transfer_id) if self.transfer_id else None,
            "realized_amount": (
                str(self.realized_amount)
                if self.realized_amount is not None
                else None
            ),
            "bridge_tx_hash": self.bridge_tx_hash,
            "deposit_tx_hash": self.deposit_tx_hash,
            "recovery_action": action.value if action else None,
        }


def _require(state: LifecycleState, target: str, *phases: Phase) -> None:
    if state.phase not in phases:
        raise InvalidTransitionError(state.phase.value, target)


def request_quote(state: LifecycleState) -> LifecycleState:
    """IDLE -> QUOTING. Starts a fresh attempt."""
    _require(state, Phase.QUOTING.value, Phase.IDLE)
    return LifecycleState(phase=Phase.QUOTING)


def attach_quote(
    state: LifecycleState,
    quote: RouteQuote,
    guard: SafetyGuardPayload,
) -> LifecycleState:
    """QUOTING -> SAFETY_GUARD, flagging BELOW_MINIMUM when unsafe."""
    _require(state, Phase.SAFETY_GUARD.value, Phase.QUOTING)
    error = None if guard.is_safe else LifecycleErrorCode.BELOW_MINIMUM
    message = None
    if error is not None:
        message = f"Net amount ${guard.net_amount} is below the safe minimum"
    return replace(
        state,
        phase=Phase.SAFETY_GUARD,
        quote=quote,
        guard=guard,
        error=error,
        error_message=message,
        risk_acknowledged=False,
    )


def quote_failed(state: LifecycleState, message: str) -> LifecycleState:
    """QUOTING -> IDLE when no route is available."""
    _require(state, Phase.IDLE.value, Phase.QUOTING)
    return LifecycleState(
        error=LifecycleErrorCode.BRIDGE_FAILED,
        error_message=message,
    )


def accept(state: LifecycleState) -> LifecycleState:
    """
    SAFETY_GUARD -> BRIDGING.

    An unsafe quote needs two calls: the first arms risk_acknowledged,
    the second proceeds and clears BELOW_MINIMUM.
    """
    _require(state, Phase.BRIDGING.value, Phase.SAFETY_GUARD)
    if state.guard is None or state.quote is None:
        raise InvalidTransitionError(state.phase.value, Phase.BRIDGING.value)

    if not state.guard.is_safe and not state.risk_acknowledged:
        return replace(state, risk_acknowledged=True)

    return replace(state, phase=Phase.BRIDGING, error=None, error_message=None)


def cancel(state: LifecycleState) -> LifecycleState:
    """Back to IDLE before any transaction is dispatched."""
    if not state.can_cancel:
        raise CancellationNotAllowedError(state.phase.value)
    return LifecycleState()


def bind_transfer(state: LifecycleState, transfer_id: UUID) -> LifecycleState:
    """Attach the persisted record id."""
    return replace(state, transfer_id=transfer_id)


def bridge_completed(
    state: LifecycleState,
    reported_amount: int,
    observed_amount: int,
    bridge_tx_hash: Optional[str] = None,
) -> LifecycleState:
    """
    BRIDGING -> DEPOSITING with the lower of reported and observed.

    A zero observed balance fails the bridge instead.
    """
    _require(state, Phase.DEPOSITING.value, Phase.BRIDGING)
    if observed_amount <= 0:
        return replace(
            state,
            phase=Phase.IDLE,
            error=LifecycleErrorCode.BRIDGE_FAILED,
            error_message="Bridged funds not observed at destination",
            bridge_tx_hash=bridge_tx_hash or state.bridge_tx_hash,
        )

    return replace(
        state,
        phase=Phase.DEPOSITING,
        error=None,
        error_message=None,
        realized_amount=min(reported_amount, observed_amount),
        bridge_tx_hash=bridge_tx_hash or state.bridge_tx_hash,
    )


def bridge_failed(
    state: LifecycleState,
    message: Optional[str] = None,
) -> LifecycleState:
    """BRIDGING -> IDLE with BRIDGE_FAILED; funds stay at the source."""
    _require(state, Phase.IDLE.value, Phase.BRIDGING)
    return replace(
        state,
        phase=Phase.IDLE,
        error=LifecycleErrorCode.BRIDGE_FAILED,
        error_message=message or "Bridge transfer failed",
    )


def deposit_submitted(state: LifecycleState, tx_hash: str) -> LifecycleState:
    """Record the deposit transaction hash."""
    _require(state, Phase.DEPOSITING.value, Phase.DEPOSITING)
    if state.error is not None:
        raise InvalidTransitionError(state.error.value, Phase.DEPOSITING.value)
    return replace(state, deposit_tx_hash=tx_hash.lower())


def deposit_confirmed(state: LifecycleState) -> LifecycleState:
    """DEPOSITING -> SUCCESS."""
    _require(state, Phase.SUCCESS.value, Phase.DEPOSITING)
    if state.error is not None:
        raise InvalidTransitionError(state.error.value, Phase.SUCCESS.value)
    return replace(state, phase=Phase.SUCCESS)


def deposit_failed(
    state: LifecycleState,
    no_gas: bool = False,
    message: Optional[str] = None,
) -> LifecycleState:
    """Stay in DEPOSITING with DEPOSIT_FAILED or NO_GAS."""
    _require(state, Phase.DEPOSITING.value, Phase.DEPOSITING)
    if no_gas:
        error = LifecycleErrorCode.NO_GAS
        message = message or "Insufficient gas token balance"
    else:
        error = LifecycleErrorCode.DEPOSIT_FAILED
        message = message or "Deposit transaction failed"
    return replace(state, error=error, error_message=message)


def retry_deposit(state: LifecycleState) -> LifecycleState:
    """Clear a deposit error, keeping realized_amount."""
    if not state.can_retry_deposit:
        current = state.error.value if state.error else state.phase.value
        raise InvalidTransitionError(current, "RETRY_DEPOSIT")
    return replace(state, error=None, error_message=None, deposit_tx_hash=None)


def reset(state: LifecycleState) -> LifecycleState:
    """Fresh IDLE, unless a transaction is in flight."""
    in_flight = state.phase == Phase.BRIDGING or (
        state.phase == Phase.DEPOSITING and state.error is None
    )
    if in_flight:
        raise InvalidTransitionError(state.phase.value, Phase.IDLE.value)
    return LifecycleState()


def recovery_action(state: LifecycleState) -> Optional[RecoveryAction]:
    """Recovery offered for the current error, if any."""
    if state.error is None:
        return None
    return RECOVERY_ACTIONS[state.error]


def lifecycle_error(
    state: LifecycleState,
    minimum_deposit: Decimal = MINIMUM_DEPOSIT_USD,
) -> Optional[LifecycleError]:
    """Exception describing the current error, for callers that raise."""
    if state.error == LifecycleErrorCode.BRIDGE_FAILED:
        return BridgeFailedError(state.error_message or "Bridge transfer failed")
    if state.error == LifecycleErrorCode.DEPOSIT_FAILED:
        return DepositFailedError(
            state.error_message or "Deposit transaction failed",
            tx_hash=state.deposit_tx_hash,
        )
    if state.error == LifecycleErrorCode.NO_GAS:
        return NoGasError(state.error_message or "Insufficient gas token balance")
    if state.error == LifecycleErrorCode.BELOW_MINIMUM and state.guard is not None:
        return BelowMinimumError(
            net_amount=str(state.guard.net_amount),
            minimum=str(minimum_deposit),
        )
    return None
