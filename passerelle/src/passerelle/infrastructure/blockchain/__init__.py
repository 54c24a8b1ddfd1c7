"""
Blockchain infrastructure.
"""

from passerelle.infrastructure.blockchain.deposit_event_source import (
    LogPollingDepositSource,
)
from passerelle.infrastructure.blockchain.evm_chain_client import (
    ERC20_ABI,
    TRANSFER_TOPIC,
    EvmChainClient,
    parse_transfer_log,
)

__all__ = [
    "ERC20_ABI",
    "TRANSFER_TOPIC",
    "EvmChainClient",
    "LogPollingDepositSource",
    "parse_transfer_log",
]
