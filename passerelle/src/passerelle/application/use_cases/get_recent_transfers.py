"""
Get Recent Transfers use case.
"""

from typing import List

from passerelle.domain.entities.transfer_record import TransferRecord
from passerelle.domain.repositories.i_transfer_record_repository import (
    MAX_PAGE_SIZE,
    ITransferRecordRepository,
)


class GetRecentTransfers:
    """Most recent transfers across all users."""

    def __init__(self, transfer_repository: ITransferRecordRepository):
        self.transfer_repository = transfer_repository

    async def execute(self, limit: int = 50) -> List[TransferRecord]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return await self.transfer_repository.get_recent(limit)
