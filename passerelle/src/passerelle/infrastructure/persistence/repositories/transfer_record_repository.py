"""
TransferRecord repository implementation using SQLAlchemy.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

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
from passerelle.infrastructure.persistence.database import Database
from passerelle.infrastructure.persistence.models import TransferRecordModel

logger = get_logger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; treat stored values as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class TransferRecordRepository(ITransferRecordRepository):
    """
    SQLAlchemy implementation of the transfer record store.

    Each call runs in its own transaction so the store can be shared by
    request handlers and background tasks. Status updates lock the row
    (SELECT ... FOR UPDATE); the stale sweep is a conditional UPDATE.
    """

    def __init__(
        self,
        database: Database,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize repository with database.

        Args:
            database: Connected Database
            clock: Source of current time
        """
        self.database = database
        self._clock = clock

    async def create(self, new_transfer: NewTransfer) -> TransferRecord:
        """Persist a new PENDING transfer."""
        record = TransferRecord.from_new(new_transfer, now=self._clock())

        async with self.database.session() as session:
            model = self._to_model(record)
            session.add(model)
            await session.flush()
            created = self._to_entity(model)

        metrics.transfers_created_total.labels(origin="api").inc()
        logger.info(
            "transfer.created",
            extra={"transfer_id": str(created.id), "user": created.user_address},
        )
        return created

    async def get_by_id(self, transfer_id: UUID) -> Optional[TransferRecord]:
        """Retrieve transfer by ID."""
        async with self.database.session() as session:
            model = await session.get(TransferRecordModel, transfer_id)
            return self._to_entity(model) if model else None

    async def get_by_tx_hash(self, tx_hash: str) -> Optional[TransferRecord]:
        """Retrieve transfer owning a bridge or deposit hash."""
        async with self.database.session() as session:
            model = await self._find_by_hash(session, tx_hash)
            return self._to_entity(model) if model else None

    async def list_by_user(
        self,
        user_address: str,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[TransferRecord], int]:
        """List a user's transfers newest first."""
        page, page_size = clamp_page(page, page_size)
        user_address = user_address.lower()

        async with self.database.session() as session:
            count_stmt = (
                select(func.count())
                .select_from(TransferRecordModel)
                .where(TransferRecordModel.user_address == user_address)
            )
            total = (await session.execute(count_stmt)).scalar_one()

            stmt = (
                select(TransferRecordModel)
                .where(TransferRecordModel.user_address == user_address)
                .order_by(TransferRecordModel.created_at.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            models = (await session.execute(stmt)).scalars().all()

        return [self._to_entity(model) for model in models], total

    async def update_status(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
        allowed_from: Optional[Iterable[TransferStatus]] = None,
        destination_amount: Optional[str] = None,
    ) -> Optional[TransferRecord]:
        """Atomically update a transfer's status under a row lock."""
        allowed = frozenset(allowed_from) if allowed_from is not None else None
        tx_hash = tx_hash.lower() if tx_hash else None

        try:
            async with self.database.write_session() as session:
                stmt = (
                    select(TransferRecordModel)
                    .where(TransferRecordModel.id == transfer_id)
                    .with_for_update()
                )
                model = (await session.execute(stmt)).scalar_one_or_none()
                if model is None:
                    return None

                record = self._to_entity(model)

                if allowed is not None and record.status not in allowed:
                    metrics.transfer_updates_skipped_total.labels(
                        reason="precondition"
                    ).inc()
                    logger.info(
                        f"Skipping {record.status.value} -> {status.value} "
                        f"for transfer {transfer_id}"
                    )
                    return record

                hash_field = record.hash_field_for(status)
                if tx_hash and hash_field and getattr(record, hash_field) is None:
                    owner = await self._find_by_hash(session, tx_hash)
                    if owner is not None and owner.id != record.id:
                        self._log_hash_collision(tx_hash, owner.id, transfer_id)
                        return record

                record.apply_status(
                    status,
                    tx_hash=tx_hash,
                    error_message=error_message,
                    now=self._clock(),
                    destination_amount=destination_amount,
                )
                self._copy_to_model(record, model)
                await session.flush()
        except IntegrityError:
            # Concurrent writer claimed the hash between our check and flush
            self._log_hash_collision(tx_hash, None, transfer_id)
            return await self.get_by_id(transfer_id)

        metrics.transfer_status_transitions_total.labels(status=status.value).inc()
        logger.info(
            "transfer.status_updated",
            extra={"transfer_id": str(transfer_id), "status": status.value},
        )
        return record

    async def mark_stale_as_failed(self, max_age: timedelta) -> int:
        """Fail PENDING/BRIDGING transfers older than max_age."""
        now = self._clock()
        cutoff = now - max_age

        async with self.database.write_session() as session:
            stmt = (
                update(TransferRecordModel)
                .where(
                    TransferRecordModel.status.in_(
                        [s.value for s in STALE_CANDIDATE_STATUSES]
                    ),
                    TransferRecordModel.created_at < cutoff,
                )
                .values(
                    status=TransferStatus.FAILED.value,
                    error_message=STALE_TIMEOUT_MESSAGE,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            count = result.rowcount or 0

        if count:
            metrics.stale_transfers_failed_total.inc(count)
            logger.info(f"Marked {count} stale transfers as failed")
        return count

    async def aggregate_stats(self) -> TransferStats:
        """Count by status and sum completed volume exactly."""
        counts = empty_status_counts()
        volume = 0

        async with self.database.session() as session:
            stmt = select(TransferRecordModel.status, func.count()).group_by(
                TransferRecordModel.status
            )
            for status, count in (await session.execute(stmt)).all():
                counts[status] = count

            amounts = await session.execute(
                select(TransferRecordModel.id, TransferRecordModel.destination_amount)
                .where(TransferRecordModel.status == TransferStatus.COMPLETED.value)
            )
            for transfer_id, raw in amounts.all():
                amount = parse_amount(raw)
                if amount is None:
                    logger.warning(
                        f"Skipping malformed amount {raw!r} on transfer {transfer_id}"
                    )
                    continue
                volume += amount

        return TransferStats(
            total=sum(counts.values()),
            counts_by_status=counts,
            total_completed_volume=volume,
        )

    async def get_recent(self, limit: int = 50) -> List[TransferRecord]:
        """List most recent transfers across all users."""
        async with self.database.session() as session:
            stmt = (
                select(TransferRecordModel)
                .order_by(TransferRecordModel.created_at.desc())
                .limit(max(1, limit))
            )
            models = (await session.execute(stmt)).scalars().all()
            return [self._to_entity(model) for model in models]

    async def record_external_deposit(
        self,
        new_transfer: NewTransfer,
        tx_hash: str,
    ) -> Tuple[TransferRecord, bool]:
        """Create a COMPLETED record for a deposit seen only on-chain."""
        existing = await self.get_by_tx_hash(tx_hash)
        if existing is not None:
            return existing, False

        now = self._clock()
        record = TransferRecord.from_new(new_transfer, now=now)
        record.apply_status(TransferStatus.COMPLETED, tx_hash=tx_hash, now=now)

        try:
            async with self.database.session() as session:
                session.add(self._to_model(record))
                await session.flush()
        except IntegrityError:
            existing = await self.get_by_tx_hash(tx_hash)
            if existing is None:
                raise
            return existing, False

        metrics.transfers_created_total.labels(origin="chain").inc()
        logger.info(
            "transfer.created",
            extra={"transfer_id": str(record.id), "origin": "chain"},
        )
        return record, True

    async def clear(self) -> None:
        """Delete every record (testing only)."""
        async with self.database.session() as session:
            await session.execute(delete(TransferRecordModel))

    async def health_check(self) -> bool:
        """Check database connectivity."""
        return await self.database.health_check()

    async def _find_by_hash(
        self, session: AsyncSession, tx_hash: str
    ) -> Optional[TransferRecordModel]:
        tx_hash = tx_hash.lower()
        stmt = select(TransferRecordModel).where(
            or_(
                TransferRecordModel.bridge_tx_hash == tx_hash,
                TransferRecordModel.deposit_tx_hash == tx_hash,
            )
        )
        return (await session.execute(stmt)).scalars().first()

    def _log_hash_collision(
        self, tx_hash: Optional[str], owner_id: Optional[UUID], transfer_id: UUID
    ) -> None:
        metrics.transfer_updates_skipped_total.labels(reason="hash_collision").inc()
        logger.warning(
            f"Transaction {tx_hash} already recorded"
            f"{f' on transfer {owner_id}' if owner_id else ''}; "
            f"ignoring update for {transfer_id}"
        )

    def _to_model(self, record: TransferRecord) -> TransferRecordModel:
        """Convert domain entity to ORM model."""
        return TransferRecordModel(
            id=record.id,
            user_address=record.user_address,
            source_chain=record.source_chain,
            source_token=record.source_token,
            source_amount=record.source_amount,
            destination_amount=record.destination_amount,
            bridge_tx_hash=record.bridge_tx_hash,
            deposit_tx_hash=record.deposit_tx_hash,
            status=record.status.value,
            error_message=record.error_message,
            created_at=record.created_at,
            updated_at=record.updated_at,
            completed_at=record.completed_at,
        )

    def _copy_to_model(
        self, record: TransferRecord, model: TransferRecordModel
    ) -> None:
        """Copy mutable fields onto a loaded model."""
        model.destination_amount = record.destination_amount
        model.bridge_tx_hash = record.bridge_tx_hash
        model.deposit_tx_hash = record.deposit_tx_hash
        model.status = record.status.value
        model.error_message = record.error_message
        model.updated_at = record.updated_at
        model.completed_at = record.completed_at

    def _to_entity(self, model: TransferRecordModel) -> TransferRecord:
        """Convert ORM model to domain entity."""
        return TransferRecord(
            id=model.id,
            user_address=model.user_address,
            source_chain=model.source_chain,
            source_token=model.source_token,
            source_amount=model.source_amount,
            destination_amount=model.destination_amount,
            bridge_tx_hash=model.bridge_tx_hash,
            deposit_tx_hash=model.deposit_tx_hash,
            status=TransferStatus(model.status),
            error_message=model.error_message,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
            completed_at=_as_utc(model.completed_at),
        )
