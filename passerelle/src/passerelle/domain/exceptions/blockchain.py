"""
Blockchain-related exceptions.
"""

from passerelle.domain.exceptions.base import PasserelleException


class BlockchainError(PasserelleException):
    """Base exception for chain RPC operations."""

    def __init__(self, message: str, code: str = "BLOCKCHAIN_ERROR"):
        super().__init__(message, code=code)


class TransactionNotFoundError(BlockchainError):
    """Raised when a transaction receipt is not available."""

    def __init__(self, tx_hash: str):
        super().__init__(
            f"Transaction not found: {tx_hash}",
            code="TRANSACTION_NOT_FOUND",
        )
        self.tx_hash = tx_hash
