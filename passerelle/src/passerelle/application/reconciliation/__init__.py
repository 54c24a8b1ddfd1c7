"""
Reconciliation between transfer records and the destination chain.
"""

from passerelle.application.reconciliation.chain_watcher import ChainWatcher
from passerelle.application.reconciliation.deposit_reconciler import (
    EXTERNAL_SOURCE_CHAIN,
    EXTERNAL_SOURCE_TOKEN,
    DepositReconciler,
    ReconcileOutcome,
)
from passerelle.application.reconciliation.stale_transfer_sweeper import (
    StaleTransferSweeper,
)

__all__ = [
    "ChainWatcher",
    "DepositReconciler",
    "ReconcileOutcome",
    "EXTERNAL_SOURCE_CHAIN",
    "EXTERNAL_SOURCE_TOKEN",
    "StaleTransferSweeper",
]
