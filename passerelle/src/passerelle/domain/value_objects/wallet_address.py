"""
WalletAddress value object - Immutable EVM account address.
"""

import re
from dataclasses import dataclass

EVM_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
TX_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")


@dataclass(frozen=True)
class WalletAddress:
    """
    Value object representing a validated EVM address.

    Business rules:
    - 0x prefix followed by exactly 40 hex characters
    - Stored lower-cased so lookups are case-insensitive
    - Immutable once created
    """

    address: str

    def __post_init__(self):
        """Validate and normalize address on creation."""
        if not self.address:
            raise ValueError("Wallet address cannot be empty")

        if not EVM_ADDRESS_PATTERN.fullmatch(self.address):
            raise ValueError(f"Invalid EVM address: {self.address}")

        object.__setattr__(self, "address", self.address.lower())

    @staticmethod
    def is_valid(address: str) -> bool:
        """Check address format without raising."""
        return bool(address) and bool(EVM_ADDRESS_PATTERN.fullmatch(address))

    def truncated(self) -> str:
        """Return truncated address for display (e.g., '0x1234...abcd')."""
        return f"{self.address[:6]}...{self.address[-4:]}"

    def __str__(self) -> str:
        """String representation returns full address."""
        return self.address


def normalize_tx_hash(tx_hash: str) -> str:
    """
    Lower-case and validate a transaction hash.

    Raises:
        ValueError: If hash is not 0x + 64 hex characters
    """
    if not tx_hash or not TX_HASH_PATTERN.fullmatch(tx_hash):
        raise ValueError(f"Invalid transaction hash: {tx_hash}")
    return tx_hash.lower()
