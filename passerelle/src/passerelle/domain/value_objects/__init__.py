"""Domain value objects."""

from passerelle.domain.value_objects.recovery_action import RecoveryAction
from passerelle.domain.value_objects.wallet_address import (
    WalletAddress,
    normalize_tx_hash,
)

__all__ = ["RecoveryAction", "WalletAddress", "normalize_tx_hash"]
