"""
Transfer record repository interface.

Defines the contract every transfer store backend must honour.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from passerelle.domain.entities.transfer_record import (
    NewTransfer,
    TransferRecord,
    TransferStats,
    TransferStatus,
)

MAX_PAGE_SIZE = 100


class ITransferRecordRepository(ABC):
    """
    Abstract repository interface for transfer record persistence.

    Implementations own TransferRecord instances: callers request
    mutations through these methods and never edit records directly.
    Writes for the same id must be linearizable.
    """

    @abstractmethod
    async def create(self, new_transfer: NewTransfer) -> TransferRecord:
        """
        Persist a new PENDING transfer.

        Args:
            new_transfer: Validated creation input

        Returns:
            Created record with generated id
        """

    @abstractmethod
    async def get_by_id(self, transfer_id: UUID) -> Optional[TransferRecord]:
        """
        Retrieve transfer by ID.

        Args:
            transfer_id: Transfer unique identifier

        Returns:
            TransferRecord if found, None otherwise
        """

    @abstractmethod
    async def get_by_tx_hash(self, tx_hash: str) -> Optional[TransferRecord]:
        """
        Retrieve transfer owning a bridge or deposit transaction hash.

        Args:
            tx_hash: Transaction hash (any case)

        Returns:
            TransferRecord if found, None otherwise
        """

    @abstractmethod
    async def list_by_user(
        self,
        user_address: str,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[TransferRecord], int]:
        """
        List a user's transfers newest first.

        Args:
            user_address: Account address (any case)
            page: 1-based page number
            page_size: Records per page, capped at MAX_PAGE_SIZE

        Returns:
            Tuple of (records on page, total records for user)
        """

    @abstractmethod
    async def update_status(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
        allowed_from: Optional[Iterable[TransferStatus]] = None,
        destination_amount: Optional[str] = None,
    ) -> Optional[TransferRecord]:
        """
        Atomically update a transfer's status.

        The hash is written to bridge_tx_hash for BRIDGING and to
        deposit_tx_hash for DEPOSITING/COMPLETED, only if that field is
        still empty. A hash already owned by another record, or a current
        status outside allowed_from, leaves the record unchanged.

        Args:
            transfer_id: Transfer unique identifier
            status: New status
            tx_hash: Optional transaction hash to record
            error_message: Optional failure reason
            allowed_from: Statuses the record must currently be in
            destination_amount: Realized amount after bridging

        Returns:
            Record after the call, or None if the id is unknown
        """

    @abstractmethod
    async def mark_stale_as_failed(self, max_age: timedelta) -> int:
        """
        Fail PENDING/BRIDGING transfers created before now - max_age.

        Args:
            max_age: Age after which in-flight records are abandoned

        Returns:
            Number of records transitioned to FAILED
        """

    @abstractmethod
    async def aggregate_stats(self) -> TransferStats:
        """
        Count transfers by status and sum completed volume.

        Returns:
            TransferStats with exact integer volume
        """

    @abstractmethod
    async def get_recent(self, limit: int = 50) -> List[TransferRecord]:
        """
        List most recent transfers across all users.

        Args:
            limit: Maximum records to return

        Returns:
            Records newest first
        """

    @abstractmethod
    async def record_external_deposit(
        self,
        new_transfer: NewTransfer,
        tx_hash: str,
    ) -> Tuple[TransferRecord, bool]:
        """
        Create a COMPLETED record for a deposit seen only on-chain.

        Idempotent on tx_hash: if a record already owns the hash it is
        returned unchanged.

        Args:
            new_transfer: Provenance of the observed deposit
            tx_hash: Deposit transaction hash

        Returns:
            Tuple of (record, created)
        """

    @abstractmethod
    async def clear(self) -> None:
        """Delete every record (testing only)."""

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check backend availability.

        Returns:
            True if the backend can serve requests
        """


def clamp_page(page: int, page_size: int) -> Tuple[int, int]:
    """Normalize pagination arguments."""
    page = max(1, int(page or 1))
    page_size = max(1, min(int(page_size or 1), MAX_PAGE_SIZE))
    return page, page_size
