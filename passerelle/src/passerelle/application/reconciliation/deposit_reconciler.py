"""
Deposit reconciler - brings transfer records in line with chain events.
"""

from collections import OrderedDict
from enum import Enum

from passerelle.domain.entities.transfer_record import (
    CHAIN_CONFIRMED_FROM,
    NewTransfer,
    TransferStatus,
)
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)
from passerelle.domain.services.i_deposit_event_source import DepositEvent
from passerelle.infrastructure.monitoring import get_logger, metrics

logger = get_logger(__name__)

EXTERNAL_SOURCE_CHAIN = "unknown"
EXTERNAL_SOURCE_TOKEN = "USDC"


class ReconcileOutcome(str, Enum):
    """What handling one event did."""

    DUPLICATE = "duplicate"
    COMPLETED = "completed"
    ALREADY_TERMINAL = "already_terminal"
    EXTERNAL_CREATED = "external_created"
    EXTERNAL_EXISTING = "external_existing"


class DepositReconciler:
    """
    Single consumer of deposit events.

    Redeliveries are dropped by a bounded LRU of (tx_hash, log_index);
    anything that slips past it is still a no-op because the store is
    idempotent on the hash. An event is only remembered after it has
    been applied, so a failure leaves it eligible for redelivery.
    """

    def __init__(
        self,
        repository: ITransferRecordRepository,
        seen_capacity: int = 10_000,
    ):
        """
        Initialize reconciler.

        Args:
            repository: Transfer record store
            seen_capacity: Maximum remembered event keys
        """
        self._repository = repository
        self._seen_capacity = max(1, seen_capacity)
        self._seen: "OrderedDict[tuple, None]" = OrderedDict()

    def has_seen(self, event: DepositEvent) -> bool:
        return event.key in self._seen

    async def handle(self, event: DepositEvent) -> ReconcileOutcome:
        """
        Apply one deposit event.

        Raises:
            PasserelleException / store errors: event stays unseen
        """
        if event.key in self._seen:
            self._seen.move_to_end(event.key)
            return self._done(event, ReconcileOutcome.DUPLICATE, remember=False)

        tx_hash = event.tx_hash.lower()
        existing = await self._repository.get_by_tx_hash(tx_hash)

        if existing is not None:
            if existing.status == TransferStatus.COMPLETED:
                return self._done(event, ReconcileOutcome.ALREADY_TERMINAL)

            await self._repository.update_status(
                existing.id,
                TransferStatus.COMPLETED,
                tx_hash=tx_hash,
                allowed_from=CHAIN_CONFIRMED_FROM,
            )
            logger.info(
                f"Reconciled transfer {existing.id} to COMPLETED from chain",
                extra={"transfer_id": str(existing.id), "tx_hash": tx_hash},
            )
            return self._done(event, ReconcileOutcome.COMPLETED)

        new_transfer = NewTransfer(
            user_address=event.user_address,
            source_chain=EXTERNAL_SOURCE_CHAIN,
            source_token=EXTERNAL_SOURCE_TOKEN,
            source_amount=str(event.amount),
            expected_destination_amount=str(event.amount),
        )
        record, created = await self._repository.record_external_deposit(
            new_transfer, tx_hash
        )
        if created:
            logger.info(
                f"Recorded external deposit {tx_hash} as transfer {record.id}",
                extra={"transfer_id": str(record.id), "tx_hash": tx_hash},
            )
            return self._done(event, ReconcileOutcome.EXTERNAL_CREATED)
        return self._done(event, ReconcileOutcome.EXTERNAL_EXISTING)

    def _done(
        self,
        event: DepositEvent,
        outcome: ReconcileOutcome,
        remember: bool = True,
    ) -> ReconcileOutcome:
        if remember:
            self._seen[event.key] = None
            while len(self._seen) > self._seen_capacity:
                self._seen.popitem(last=False)
        metrics.reconciler_events_total.labels(outcome=outcome.value).inc()
        return outcome
