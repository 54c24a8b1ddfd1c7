"""
Transfer notifier interface.

Lets the lifecycle persist progress through the transfer API.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from passerelle.domain.entities.transfer_record import NewTransfer, TransferStatus


class ITransferNotifier(ABC):
    """Abstract interface for reporting lifecycle progress."""

    @abstractmethod
    async def create_transfer(self, new_transfer: NewTransfer) -> UUID:
        """Create the backend record and return its id."""

    @abstractmethod
    async def update_status(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Persist a status change."""

    @abstractmethod
    async def notify_bridge_success(
        self, transfer_id: UUID, tx_hash: str, amount: int
    ) -> None:
        """Report a verified bridge completion."""

    @abstractmethod
    async def notify_deposit_success(
        self, transfer_id: UUID, tx_hash: str, amount: int
    ) -> None:
        """Report a confirmed deposit."""
