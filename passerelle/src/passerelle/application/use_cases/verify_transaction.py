"""
Verify Transaction use case.
Read-only on-chain check of a stablecoin transfer.
"""

from typing import Optional

from passerelle.domain.services.i_chain_reader import (
    IChainReader,
    TransactionVerification,
)


class VerifyTransaction:
    """Check a transaction receipt against optional expectations."""

    def __init__(self, chain_reader: IChainReader):
        self.chain_reader = chain_reader

    async def execute(
        self,
        tx_hash: str,
        expected_amount: Optional[int] = None,
        expected_recipient: Optional[str] = None,
    ) -> TransactionVerification:
        """
        Raises:
            BlockchainError: If the chain cannot be queried
        """
        return await self.chain_reader.verify_transaction(
            tx_hash,
            expected_amount=expected_amount,
            expected_recipient=expected_recipient,
        )
