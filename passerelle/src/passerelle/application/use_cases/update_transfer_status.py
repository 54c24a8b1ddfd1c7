"""
Update Transfer Status use case.
Forward-only status changes requested through the API.
"""

from typing import Optional
from uuid import UUID

from passerelle.domain.entities.transfer_record import (
    FORWARD_TRANSITIONS,
    TransferRecord,
    TransferStatus,
)
from passerelle.domain.exceptions import EntityNotFoundError, InvalidTransitionError
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)


class UpdateTransferStatus:
    """
    Apply a caller-requested status change.

    Business rules:
    - Transitions only move forward (repeating the current status is
      allowed and idempotent)
    - A backward request is rejected with InvalidTransitionError
    - A record that moved on concurrently is returned unchanged
    """

    def __init__(self, transfer_repository: ITransferRecordRepository):
        self.transfer_repository = transfer_repository

    async def execute(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> TransferRecord:
        """
        Execute status update.

        Raises:
            EntityNotFoundError: If transfer not found
            InvalidTransitionError: If status would move backward
        """
        record = await self.transfer_repository.get_by_id(transfer_id)
        if record is None:
            raise EntityNotFoundError("Transfer", str(transfer_id))

        if record.status.is_terminal and record.status == status:
            return record

        allowed_from = FORWARD_TRANSITIONS[status] | {status}
        if record.status not in allowed_from:
            raise InvalidTransitionError(record.status.value, status.value)

        updated = await self.transfer_repository.update_status(
            transfer_id,
            status,
            tx_hash=tx_hash,
            error_message=error_message,
            allowed_from=allowed_from,
        )
        if updated is None:
            raise EntityNotFoundError("Transfer", str(transfer_id))
        return updated
