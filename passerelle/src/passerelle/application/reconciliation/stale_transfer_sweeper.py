"""
Stale transfer sweeper - fails transfers stuck before the deposit step.
"""

import asyncio
import time
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from passerelle.domain.exceptions import PasserelleException
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)
from passerelle.infrastructure.monitoring import get_logger, log_performance

logger = get_logger(__name__)


class StaleTransferSweeper:
    """
    Periodically calls mark_stale_as_failed.

    DEPOSITING records are never swept; the store only touches
    PENDING and BRIDGING.
    """

    def __init__(
        self,
        repository: ITransferRecordRepository,
        max_age: timedelta = timedelta(minutes=30),
        interval_seconds: float = 300.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._repository = repository
        self._max_age = max_age
        self._interval = interval_seconds
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        """Run a single sweep and return the number of records failed."""
        start = time.monotonic()
        count = await self._repository.mark_stale_as_failed(self._max_age)
        log_performance(logger, "stale_sweep", start)
        return count

    def start(self) -> None:
        if not self.is_running:
            self._task = asyncio.create_task(self.run(), name="stale-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run(self) -> None:
        while True:
            await self._sleep(self._interval)
            try:
                await self.sweep_once()
            except (PasserelleException, SQLAlchemyError, OSError) as e:
                logger.error(f"Stale transfer sweep failed: {e}", exc_info=True)
            except Exception as e:
                logger.error(
                    f"Unexpected error in stale transfer sweep: {e}", exc_info=True
                )
