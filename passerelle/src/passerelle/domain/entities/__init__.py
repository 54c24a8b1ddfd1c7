"""Domain entities."""

from passerelle.domain.entities.transfer_record import (
    FORWARD_TRANSITIONS,
    NewTransfer,
    TransferRecord,
    TransferStats,
    TransferStatus,
)

__all__ = [
    "FORWARD_TRANSITIONS",
    "NewTransfer",
    "TransferRecord",
    "TransferStats",
    "TransferStatus",
]
