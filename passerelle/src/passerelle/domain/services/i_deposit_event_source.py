"""
Deposit event source interface.

A cancellable subscription producing typed deposit events.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional


@dataclass(frozen=True)
class DepositEvent:
    """Stablecoin arrival at the trading venue's asset bridge."""

    tx_hash: str
    log_index: int
    user_address: str
    amount: int
    block_number: int

    @property
    def key(self) -> tuple:
        """Identity of the event across redeliveries."""
        return (self.tx_hash.lower(), self.log_index)


class IDepositEventSource(ABC):
    """
    Abstract interface for destination-chain deposit events.

    Delivery is at-least-once and in delivery order, which is not
    necessarily block order.
    """

    @abstractmethod
    def subscribe(self) -> AsyncIterator[DepositEvent]:
        """
        Iterate over deposit events until cancelled.

        Resubscribing resumes from the last fully processed block.

        Raises:
            BlockchainError: On transport failure
        """

    @property
    @abstractmethod
    def cursor(self) -> Optional[int]:
        """Last block whose events have all been delivered."""
