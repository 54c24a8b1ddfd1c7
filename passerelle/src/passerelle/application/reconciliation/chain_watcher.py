"""
Chain watcher - long-lived task feeding deposit events to the reconciler.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from passerelle.application.reconciliation.deposit_reconciler import (
    DepositReconciler,
)
from passerelle.domain.exceptions import PasserelleException
from passerelle.domain.services.i_deposit_event_source import IDepositEventSource
from passerelle.infrastructure.monitoring import get_logger, metrics

logger = get_logger(__name__)


class ChainWatcher:
    """
    Consumes the deposit event source until stopped.

    On any failure the subscription is re-opened after an exponential
    backoff; the source resumes from its cursor. Cancellation stops the
    loop.
    """

    def __init__(
        self,
        source: IDepositEventSource,
        reconciler: DepositReconciler,
        initial_backoff: float = 1.0,
        max_backoff: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._source = source
        self._reconciler = reconciler
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.restarts = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the watcher task."""
        if not self.is_running:
            self._task = asyncio.create_task(self.run(), name="chain-watcher")
            logger.info("Chain watcher started")

    async def stop(self) -> None:
        """Cancel the watcher task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Chain watcher stopped")

    async def run(self) -> None:
        """Consume events forever, resubscribing on failure."""
        backoff = self._initial_backoff

        while True:
            try:
                async for event in self._source.subscribe():
                    await self._reconciler.handle(event)
                    backoff = self._initial_backoff
            except asyncio.CancelledError:
                raise
            except (
                PasserelleException,
                SQLAlchemyError,
                OSError,
                asyncio.TimeoutError,
            ) as e:
                self.restarts += 1
                metrics.chain_watcher_restarts_total.inc()
                logger.warning(
                    f"Chain subscription failed, resubscribing in {backoff:.1f}s: {e}",
                    extra={"cursor": self._source.cursor},
                )
                await self._sleep(backoff)
                backoff = min(backoff * 2, self._max_backoff)
                continue
            except Exception as e:
                self.restarts += 1
                metrics.chain_watcher_restarts_total.inc()
                logger.error(
                    f"Chain watcher crashed, resubscribing in {backoff:.1f}s: {e}",
                    exc_info=True,
                    extra={"cursor": self._source.cursor},
                )
                await self._sleep(backoff)
                backoff = min(backoff * 2, self._max_backoff)
                continue

            # Source ended without error; resubscribe after a pause
            await self._sleep(self._initial_backoff)
