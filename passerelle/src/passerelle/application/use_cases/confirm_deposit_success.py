"""
Confirm Deposit Success use case.
Webhook reporting that the deposit into the trading venue confirmed.
"""

from uuid import UUID

from passerelle.domain.entities.transfer_record import (
    CHAIN_CONFIRMED_FROM,
    TransferRecord,
    TransferStatus,
)
from passerelle.domain.exceptions import EntityNotFoundError, VerificationFailedError
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)
from passerelle.domain.services.i_chain_reader import IChainReader
from passerelle.infrastructure.monitoring import get_logger

logger = get_logger(__name__)


class ConfirmDepositSuccess:
    """
    Verify a deposit transaction and complete the transfer.

    Business rules:
    - The transaction must have moved at least amount of the
      stablecoin to the asset bridge
    - Verified chain evidence completes a record even if the stale
      sweep already failed it
    - Completing twice is a no-op
    """

    def __init__(
        self,
        transfer_repository: ITransferRecordRepository,
        chain_reader: IChainReader,
        bridge_address: str,
    ):
        """
        Initialize use case with dependencies.

        Args:
            transfer_repository: Transfer record store
            chain_reader: Destination chain reads
            bridge_address: Trading venue asset bridge
        """
        self.transfer_repository = transfer_repository
        self.chain_reader = chain_reader
        self.bridge_address = bridge_address.lower()

    async def execute(
        self,
        transfer_id: UUID,
        tx_hash: str,
        amount: int,
    ) -> TransferRecord:
        """
        Execute deposit confirmation.

        Raises:
            EntityNotFoundError: If transfer not found
            VerificationFailedError: If on-chain data does not match
            BlockchainError: If the chain cannot be queried
        """
        record = await self.transfer_repository.get_by_id(transfer_id)
        if record is None:
            raise EntityNotFoundError("Transfer", str(transfer_id))

        if record.status == TransferStatus.COMPLETED:
            return record

        verification = await self.chain_reader.verify_transaction(
            tx_hash,
            expected_amount=amount,
            expected_recipient=self.bridge_address,
        )
        if not verification.verified:
            logger.warning(
                f"Deposit verification failed for {tx_hash}: {verification.reason}",
                extra={"transfer_id": str(transfer_id)},
            )
            raise VerificationFailedError(
                tx_hash, verification.reason or "Transaction not confirmed"
            )

        updated = await self.transfer_repository.update_status(
            transfer_id,
            TransferStatus.COMPLETED,
            tx_hash=tx_hash,
            allowed_from=CHAIN_CONFIRMED_FROM,
        )
        if updated is None:
            raise EntityNotFoundError("Transfer", str(transfer_id))

        logger.info(
            "transfer.completed",
            extra={"transfer_id": str(transfer_id), "tx_hash": tx_hash.lower()},
        )
        return updated
