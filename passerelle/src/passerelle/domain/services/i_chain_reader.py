"""
Chain reader interface.

Defines read-only queries against the destination chain.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class TransactionVerification:
    """
    Result of checking a transaction receipt on-chain.

    amount/recipient/token describe the matching ERC20 Transfer log,
    when one was found.
    """

    tx_hash: str
    confirmed: bool
    success: bool
    block_number: Optional[int] = None
    token: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    amount: Optional[int] = None
    reason: Optional[str] = None

    @property
    def verified(self) -> bool:
        """Transaction mined, succeeded and matched expectations."""
        return self.confirmed and self.success and self.reason is None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "tx_hash": self.tx_hash,
            "verified": self.verified,
            "confirmed": self.confirmed,
            "success": self.success,
            "block_number": self.block_number,
            "token": self.token,
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": str(self.amount) if self.amount is not None else None,
            "reason": self.reason,
        }


class IChainReader(ABC):
    """
    Abstract interface for destination chain reads.

    Clean Architecture: Domain layer defines interface,
    Infrastructure layer implements concrete RPC queries.
    """

    @abstractmethod
    async def get_token_balance(self, address: str) -> int:
        """
        Get stablecoin balance of an address.

        Args:
            address: Account address

        Returns:
            Balance in atomic units

        Raises:
            BlockchainError: If query fails
        """

    @abstractmethod
    async def verify_transaction(
        self,
        tx_hash: str,
        expected_amount: Optional[int] = None,
        expected_recipient: Optional[str] = None,
    ) -> TransactionVerification:
        """
        Verify a stablecoin transfer transaction.

        Args:
            tx_hash: Transaction hash
            expected_amount: Minimum transferred amount (atomic units)
            expected_recipient: Required recipient address

        Returns:
            TransactionVerification (verified is False on mismatch)

        Raises:
            BlockchainError: If the RPC cannot be queried
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Check RPC connectivity."""

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
