"""
In-memory TransferRecord repository.

Volatile backend used when no database is configured or reachable.
"""

import itertools
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from passerelle.domain.entities.transfer_record import (
    STALE_CANDIDATE_STATUSES,
    STALE_TIMEOUT_MESSAGE,
    NewTransfer,
    TransferRecord,
    TransferStats,
    TransferStatus,
    empty_status_counts,
    parse_amount,
    utc_now,
)
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
    clamp_page,
)
from passerelle.infrastructure.monitoring import get_logger, metrics

logger = get_logger(__name__)


class InMemoryTransferRecordRepository(ITransferRecordRepository):
    """
    Process-local transfer store.

    Records live in a dict keyed by id with a secondary index from
    transaction hash to id. Every operation holds one re-entrant lock,
    so updates are linearizable across tasks and threads. Callers get
    copies; stored instances are never handed out.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        """
        Initialize empty store.

        Args:
            clock: Source of current time
        """
        self._clock = clock
        self._records: Dict[UUID, TransferRecord] = {}
        self._sequence: Dict[UUID, int] = {}
        self._hash_index: Dict[str, UUID] = {}
        self._counter = itertools.count()
        self._lock = threading.RLock()

    async def create(self, new_transfer: NewTransfer) -> TransferRecord:
        """Persist a new PENDING transfer."""
        record = TransferRecord.from_new(new_transfer, now=self._clock())

        with self._lock:
            self._insert(record)

        metrics.transfers_created_total.labels(origin="api").inc()
        logger.info(
            "transfer.created",
            extra={"transfer_id": str(record.id), "user": record.user_address},
        )
        return replace(record)

    async def get_by_id(self, transfer_id: UUID) -> Optional[TransferRecord]:
        """Retrieve transfer by ID."""
        with self._lock:
            record = self._records.get(transfer_id)
            return replace(record) if record else None

    async def get_by_tx_hash(self, tx_hash: str) -> Optional[TransferRecord]:
        """Retrieve transfer owning a bridge or deposit hash."""
        with self._lock:
            transfer_id = self._hash_index.get(tx_hash.lower())
            if transfer_id is None:
                return None
            return replace(self._records[transfer_id])

    async def list_by_user(
        self,
        user_address: str,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[TransferRecord], int]:
        """List a user's transfers newest first."""
        page, page_size = clamp_page(page, page_size)
        user_address = user_address.lower()

        with self._lock:
            matching = [
                r for r in self._records.values() if r.user_address == user_address
            ]
            matching.sort(key=self._newest_first)
            start = (page - 1) * page_size
            return (
                [replace(r) for r in matching[start : start + page_size]],
                len(matching),
            )

    async def update_status(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
        allowed_from: Optional[Iterable[TransferStatus]] = None,
        destination_amount: Optional[str] = None,
    ) -> Optional[TransferRecord]:
        """Atomically update a transfer's status."""
        allowed = frozenset(allowed_from) if allowed_from is not None else None
        tx_hash = tx_hash.lower() if tx_hash else None

        with self._lock:
            record = self._records.get(transfer_id)
            if record is None:
                return None

            if allowed is not None and record.status not in allowed:
                metrics.transfer_updates_skipped_total.labels(
                    reason="precondition"
                ).inc()
                logger.info(
                    f"Skipping {record.status.value} -> {status.value} "
                    f"for transfer {transfer_id}"
                )
                return replace(record)

            hash_field = record.hash_field_for(status)
            claims_hash = (
                tx_hash is not None
                and hash_field is not None
                and getattr(record, hash_field) is None
            )
            if claims_hash:
                owner = self._hash_index.get(tx_hash)
                if owner is not None and owner != transfer_id:
                    metrics.transfer_updates_skipped_total.labels(
                        reason="hash_collision"
                    ).inc()
                    logger.warning(
                        f"Transaction {tx_hash} already recorded on transfer "
                        f"{owner}; ignoring update for {transfer_id}"
                    )
                    return replace(record)

            record.apply_status(
                status,
                tx_hash=tx_hash,
                error_message=error_message,
                now=self._clock(),
                destination_amount=destination_amount,
            )
            if claims_hash:
                self._hash_index[tx_hash] = transfer_id
            updated = replace(record)

        metrics.transfer_status_transitions_total.labels(status=status.value).inc()
        logger.info(
            "transfer.status_updated",
            extra={"transfer_id": str(transfer_id), "status": status.value},
        )
        return updated

    async def mark_stale_as_failed(self, max_age: timedelta) -> int:
        """Fail PENDING/BRIDGING transfers older than max_age."""
        now = self._clock()
        cutoff = now - max_age
        count = 0

        with self._lock:
            for record in self._records.values():
                if (
                    record.status in STALE_CANDIDATE_STATUSES
                    and record.created_at < cutoff
                ):
                    record.apply_status(
                        TransferStatus.FAILED,
                        error_message=STALE_TIMEOUT_MESSAGE,
                        now=now,
                    )
                    count += 1

        if count:
            metrics.stale_transfers_failed_total.inc(count)
            logger.info(f"Marked {count} stale transfers as failed")
        return count

    async def aggregate_stats(self) -> TransferStats:
        """Count by status and sum completed volume exactly."""
        counts = empty_status_counts()
        volume = 0

        with self._lock:
            records = [replace(r) for r in self._records.values()]

        for record in records:
            counts[record.status.value] += 1
            if record.status != TransferStatus.COMPLETED:
                continue
            amount = parse_amount(record.destination_amount)
            if amount is None:
                logger.warning(
                    f"Skipping malformed amount {record.destination_amount!r} "
                    f"on transfer {record.id}"
                )
                continue
            volume += amount

        return TransferStats(
            total=len(records),
            counts_by_status=counts,
            total_completed_volume=volume,
        )

    async def get_recent(self, limit: int = 50) -> List[TransferRecord]:
        """List most recent transfers across all users."""
        with self._lock:
            records = sorted(self._records.values(), key=self._newest_first)
            return [replace(r) for r in records[: max(1, limit)]]

    async def record_external_deposit(
        self,
        new_transfer: NewTransfer,
        tx_hash: str,
    ) -> Tuple[TransferRecord, bool]:
        """Create a COMPLETED record for a deposit seen only on-chain."""
        tx_hash = tx_hash.lower()
        now = self._clock()

        with self._lock:
            owner = self._hash_index.get(tx_hash)
            if owner is not None:
                return replace(self._records[owner]), False

            record = TransferRecord.from_new(new_transfer, now=now)
            record.apply_status(TransferStatus.COMPLETED, tx_hash=tx_hash, now=now)
            self._insert(record)

        metrics.transfers_created_total.labels(origin="chain").inc()
        logger.info(
            "transfer.created",
            extra={"transfer_id": str(record.id), "origin": "chain"},
        )
        return replace(record), True

    async def clear(self) -> None:
        """Delete every record (testing only)."""
        with self._lock:
            self._records.clear()
            self._sequence.clear()
            self._hash_index.clear()

    async def health_check(self) -> bool:
        """In-memory store is always available."""
        return True

    def _insert(self, record: TransferRecord) -> None:
        """Store record and index its hashes. Caller holds the lock."""
        self._records[record.id] = record
        self._sequence[record.id] = next(self._counter)
        for tx_hash in (record.bridge_tx_hash, record.deposit_tx_hash):
            if tx_hash:
                self._hash_index[tx_hash] = record.id

    def _newest_first(self, record: TransferRecord):
        return (-record.created_at.timestamp(), -self._sequence[record.id])
