"""
Confirm Bridge Success use case.
Webhook reporting that bridged funds reached the destination chain.
"""

from uuid import UUID

from passerelle.domain.entities.transfer_record import TransferRecord, TransferStatus
from passerelle.domain.exceptions import EntityNotFoundError, VerificationFailedError
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)
from passerelle.domain.services.i_chain_reader import IChainReader
from passerelle.infrastructure.monitoring import get_logger

logger = get_logger(__name__)

_BRIDGE_PHASES = frozenset({TransferStatus.PENDING, TransferStatus.BRIDGING})


class ConfirmBridgeSuccess:
    """
    Verify a bridge transaction and move the transfer to DEPOSITING.

    Business rules:
    - The transaction must have succeeded and moved at least amount
      of the stablecoin to the transfer's user address
    - The hash is stored as bridge_tx_hash
    - The realized amount replaces the expected destination amount
    - A transfer already past the bridge step is returned unchanged
    """

    def __init__(
        self,
        transfer_repository: ITransferRecordRepository,
        chain_reader: IChainReader,
    ):
        """
        Initialize use case with dependencies.

        Args:
            transfer_repository: Transfer record store
            chain_reader: Destination chain reads
        """
        self.transfer_repository = transfer_repository
        self.chain_reader = chain_reader

    async def execute(
        self,
        transfer_id: UUID,
        tx_hash: str,
        amount: int,
    ) -> TransferRecord:
        """
        Execute bridge confirmation.

        Raises:
            EntityNotFoundError: If transfer not found
            VerificationFailedError: If on-chain data does not match
            BlockchainError: If the chain cannot be queried
        """
        record = await self.transfer_repository.get_by_id(transfer_id)
        if record is None:
            raise EntityNotFoundError("Transfer", str(transfer_id))

        if record.status not in _BRIDGE_PHASES:
            logger.info(
                f"Bridge success for transfer {transfer_id} ignored "
                f"in status {record.status.value}"
            )
            return record

        verification = await self.chain_reader.verify_transaction(
            tx_hash,
            expected_amount=amount,
            expected_recipient=record.user_address,
        )
        if not verification.verified:
            logger.warning(
                f"Bridge verification failed for {tx_hash}: {verification.reason}",
                extra={"transfer_id": str(transfer_id)},
            )
            raise VerificationFailedError(
                tx_hash, verification.reason or "Transaction not confirmed"
            )

        await self.transfer_repository.update_status(
            transfer_id,
            TransferStatus.BRIDGING,
            tx_hash=tx_hash,
            allowed_from=_BRIDGE_PHASES,
        )
        updated = await self.transfer_repository.update_status(
            transfer_id,
            TransferStatus.DEPOSITING,
            destination_amount=str(amount),
            allowed_from=_BRIDGE_PHASES,
        )
        if updated is None:
            raise EntityNotFoundError("Transfer", str(transfer_id))
        return updated
