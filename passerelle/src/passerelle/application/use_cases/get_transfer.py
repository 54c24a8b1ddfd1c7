"""
Get Transfer use case.
"""

from uuid import UUID

from passerelle.domain.entities.transfer_record import TransferRecord
from passerelle.domain.exceptions import EntityNotFoundError
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)


class GetTransfer:
    """Retrieve a single transfer record by id."""

    def __init__(self, transfer_repository: ITransferRecordRepository):
        self.transfer_repository = transfer_repository

    async def execute(self, transfer_id: UUID) -> TransferRecord:
        """
        Raises:
            EntityNotFoundError: If transfer not found
        """
        record = await self.transfer_repository.get_by_id(transfer_id)
        if record is None:
            raise EntityNotFoundError("Transfer", str(transfer_id))
        return record
