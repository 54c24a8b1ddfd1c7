"""
Deposit event source backed by eth_getLogs polling.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional

from passerelle.domain.services.i_deposit_event_source import (
    DepositEvent,
    IDepositEventSource,
)
from passerelle.infrastructure.blockchain.evm_chain_client import EvmChainClient
from passerelle.infrastructure.monitoring import get_logger, metrics

logger = get_logger(__name__)


class LogPollingDepositSource(IDepositEventSource):
    """
    Polls asset bridge Transfer logs block range by block range.

    The cursor only advances after every event of a range has been
    yielded, so a consumer that fails mid-range sees the range again
    when it resubscribes.
    """

    def __init__(
        self,
        chain_client: EvmChainClient,
        poll_interval: float = 2.0,
        batch_blocks: int = 500,
        confirmations: int = 1,
        start_block: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize event source.

        Args:
            chain_client: Chain RPC client
            poll_interval: Seconds between polls once caught up
            batch_blocks: Maximum blocks per eth_getLogs request
            confirmations: Blocks a log must be buried under
            start_block: Last already-processed block (None starts at head)
            sleep: Awaitable sleep (tests)
        """
        self._client = chain_client
        self._poll_interval = poll_interval
        self._batch_blocks = max(1, batch_blocks)
        self._confirmations = max(1, confirmations)
        self._cursor = start_block
        self._sleep = sleep

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    async def subscribe(self) -> AsyncIterator[DepositEvent]:
        while True:
            head = await self._client.get_block_number()
            safe_block = head - (self._confirmations - 1)

            if self._cursor is None:
                self._cursor = safe_block
                logger.info(f"Watching bridge deposits from block {safe_block}")

            if safe_block <= self._cursor:
                await self._sleep(self._poll_interval)
                continue

            to_block = min(safe_block, self._cursor + self._batch_blocks)
            events = await self._client.get_bridge_deposits(self._cursor + 1, to_block)
            for event in events:
                yield event

            self._cursor = to_block
            metrics.chain_watcher_cursor.set(to_block)
