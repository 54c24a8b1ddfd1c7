"""
Deposit executor interface.

Submits the same-chain deposit into the trading venue. Signing happens
in the caller's wallet; this service never holds keys.
"""

from abc import ABC, abstractmethod


class IDepositExecutor(ABC):
    """Abstract interface for the deposit transaction."""

    @abstractmethod
    async def submit_deposit(self, amount: int) -> str:
        """
        Send amount (atomic units) to the asset bridge.

        Returns:
            Transaction hash

        Raises:
            NoGasError: If gas token balance is insufficient
            DepositFailedError: If submission fails
        """

    @abstractmethod
    async def wait_for_confirmation(self, tx_hash: str) -> bool:
        """
        Wait until the deposit is mined.

        Returns:
            True if the transaction succeeded
        """
