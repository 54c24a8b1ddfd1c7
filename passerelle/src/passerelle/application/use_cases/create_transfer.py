"""
Create Transfer use case.
Registers a new PENDING transfer before the bridge step starts.
"""

from passerelle.domain.entities.transfer_record import NewTransfer, TransferRecord
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)


class CreateTransfer:
    """
    Create a transfer record.

    Business rules:
    - Address must be an EVM address (stored lower-cased)
    - Amounts are non-negative integer strings in atomic units
    - New records start PENDING
    """

    def __init__(self, transfer_repository: ITransferRecordRepository):
        """
        Initialize use case with dependencies.

        Args:
            transfer_repository: Transfer record store
        """
        self.transfer_repository = transfer_repository

    async def execute(
        self,
        user_address: str,
        source_chain: str,
        source_token: str,
        source_amount: str,
        expected_destination_amount: str,
    ) -> TransferRecord:
        """
        Execute transfer creation.

        Returns:
            Created TransferRecord

        Raises:
            ValidationError: If any field is malformed
        """
        new_transfer = NewTransfer(
            user_address=user_address,
            source_chain=source_chain,
            source_token=source_token,
            source_amount=source_amount,
            expected_destination_amount=expected_destination_amount,
        )
        return await self.transfer_repository.create(new_transfer)
