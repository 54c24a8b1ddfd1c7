"""
Transfer lifecycle: safety guard, state machine and orchestrator.
"""

from passerelle.application.lifecycle.orchestrator import TransferLifecycle
from passerelle.application.lifecycle.safety_guard import (
    BURN_THRESHOLD_USD,
    GAS_REFUEL_AMOUNT,
    MAXIMUM_DEPOSIT_USD,
    MINIMUM_DEPOSIT_USD,
    SafetyGuardPayload,
    evaluate,
)
from passerelle.application.lifecycle.state_machine import (
    LifecycleErrorCode,
    LifecycleState,
    Phase,
    lifecycle_error,
    recovery_action,
)

__all__ = [
    "TransferLifecycle",
    "BURN_THRESHOLD_USD",
    "GAS_REFUEL_AMOUNT",
    "MAXIMUM_DEPOSIT_USD",
    "MINIMUM_DEPOSIT_USD",
    "SafetyGuardPayload",
    "evaluate",
    "LifecycleErrorCode",
    "LifecycleState",
    "Phase",
    "lifecycle_error",
    "recovery_action",
]
