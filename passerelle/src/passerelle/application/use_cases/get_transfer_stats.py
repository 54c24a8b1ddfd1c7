"""
Get Transfer Stats use case.
"""

from passerelle.domain.entities.transfer_record import TransferStats
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)


class GetTransferStats:
    """Aggregate counts by status and completed volume."""

    def __init__(self, transfer_repository: ITransferRecordRepository):
        self.transfer_repository = transfer_repository

    async def execute(self) -> TransferStats:
        return await self.transfer_repository.aggregate_stats()
