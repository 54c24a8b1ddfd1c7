"""
Behaviour both transfer record stores must share.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import update

from helpers.fakes import OTHER_USER, USER, new_transfer, tx_hash
from passerelle.domain.entities.transfer_record import (
    CHAIN_CONFIRMED_FROM,
    FORWARD_TRANSITIONS,
    MAX_AMOUNT_DIGITS,
    MAX_CHAIN_FIELD_LENGTH,
    STALE_TIMEOUT_MESSAGE,
    TransferStatus,
)
from passerelle.domain.exceptions import ValidationError
from passerelle.infrastructure.persistence.database import Database
from passerelle.infrastructure.persistence.models import TransferRecordModel
from passerelle.infrastructure.persistence.repositories import (
    InMemoryTransferRecordRepository,
    TransferRecordRepository,
)

pytestmark = pytest.mark.integration


class SteppingClock:
    """Each reading is one second after the previous one."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, clock, tmp_path):
    if request.param == "memory":
        yield InMemoryTransferRecordRepository(clock=clock)
        return

    url = f"sqlite+aiosqlite:///{tmp_path / 'contract.db'}"
    database = Database(database_url=url)
    await database.connect()
    await database.create_tables()

    yield TransferRecordRepository(database, clock=clock)

    await database.drop_tables()
    await database.disconnect()


async def _corrupt_destination_amount(store, transfer_id, value: str) -> None:
    """Write a malformed amount past entity validation."""
    if isinstance(store, InMemoryTransferRecordRepository):
        store._records[transfer_id].destination_amount = value
        return
    async with store.database.session() as session:
        await session.execute(
            update(TransferRecordModel)
            .where(TransferRecordModel.id == transfer_id)
            .values(destination_amount=value)
        )


class TestInputLimits:
    async def test_accepts_fields_at_column_width(self, store):
        record = await store.create(
            new_transfer(
                source_chain="c" * MAX_CHAIN_FIELD_LENGTH,
                source_amount="9" * MAX_AMOUNT_DIGITS,
            )
        )

        fetched = await store.get_by_id(record.id)

        assert fetched.source_chain == "c" * MAX_CHAIN_FIELD_LENGTH
        assert fetched.source_amount == "9" * MAX_AMOUNT_DIGITS

    @pytest.mark.parametrize(
        "overrides",
        [
            {"source_chain": "c" * (MAX_CHAIN_FIELD_LENGTH + 1)},
            {"source_amount": "9" * (MAX_AMOUNT_DIGITS + 1)},
            {"expected": "1" * (MAX_AMOUNT_DIGITS + 1)},
            {"source_amount": "²"},
            {"expected": "١٢٣"},
        ],
    )
    async def test_rejects_values_the_columns_cannot_hold(self, store, overrides):
        with pytest.raises(ValidationError):
            await store.create(new_transfer(**overrides))

        assert (await store.aggregate_stats()).total == 0

    async def test_oversized_destination_amount_rejected_on_update(self, store):
        record = await store.create(new_transfer())

        with pytest.raises(ValidationError):
            await store.update_status(
                record.id,
                TransferStatus.COMPLETED,
                destination_amount="9" * (MAX_AMOUNT_DIGITS + 1),
            )


class TestStatsContract:
    async def test_malformed_amount_skipped_without_aborting(self, store):
        good = await store.create(new_transfer(expected="7"))
        bad = await store.create(new_transfer(expected="8"))
        for record in (good, bad):
            await store.update_status(record.id, TransferStatus.COMPLETED)
        await _corrupt_destination_amount(store, bad.id, "²")

        stats = await store.aggregate_stats()

        assert stats.total == 2
        assert stats.counts_by_status["COMPLETED"] == 2
        assert stats.total_completed_volume == 7

    async def test_volume_exceeds_64_bits(self, store):
        big = str(2**70)
        for _ in range(2):
            record = await store.create(new_transfer(expected=big))
            await store.update_status(record.id, TransferStatus.COMPLETED)

        stats = await store.aggregate_stats()

        assert stats.total_completed_volume == 2 * 2**70


class TestPaginationContract:
    async def test_pages_newest_first(self, store):
        records = [await store.create(new_transfer()) for _ in range(3)]
        await store.create(new_transfer(user_address=OTHER_USER))

        first_page, total = await store.list_by_user(USER, page=1, page_size=2)
        second_page, _ = await store.list_by_user(USER, page=2, page_size=2)

        assert total == 3
        assert [r.id for r in first_page] == [records[2].id, records[1].id]
        assert [r.id for r in second_page] == [records[0].id]

    async def test_page_past_the_end_is_empty(self, store):
        await store.create(new_transfer())

        page, total = await store.list_by_user(USER, page=5, page_size=10)

        assert page == []
        assert total == 1


class TestStaleSweepContract:
    async def test_only_old_pending_and_bridging_fail(self, store, clock):
        pending = await store.create(new_transfer())
        bridging = await store.create(new_transfer())
        depositing = await store.create(new_transfer())
        completed = await store.create(new_transfer())
        failed = await store.create(new_transfer())
        await store.update_status(bridging.id, TransferStatus.BRIDGING, tx_hash(1))
        await store.update_status(
            depositing.id, TransferStatus.DEPOSITING, tx_hash=tx_hash(2)
        )
        await store.update_status(
            completed.id, TransferStatus.COMPLETED, tx_hash=tx_hash(3)
        )
        await store.update_status(
            failed.id, TransferStatus.FAILED, error_message="no route"
        )

        clock.now += timedelta(minutes=31)
        fresh = await store.create(new_transfer())

        count = await store.mark_stale_as_failed(timedelta(minutes=30))

        assert count == 2
        for record_id in (pending.id, bridging.id):
            record = await store.get_by_id(record_id)
            assert record.status == TransferStatus.FAILED
            assert record.error_message == STALE_TIMEOUT_MESSAGE
        assert (await store.get_by_id(depositing.id)).status == (
            TransferStatus.DEPOSITING
        )
        assert (await store.get_by_id(completed.id)).status == (
            TransferStatus.COMPLETED
        )
        untouched = await store.get_by_id(failed.id)
        assert untouched.status == TransferStatus.FAILED
        assert untouched.error_message == "no route"
        assert (await store.get_by_id(fresh.id)).status == TransferStatus.PENDING


class TestConcurrentUpdates:
    @pytest.mark.parametrize("chain_first", [True, False])
    async def test_chain_completion_races_deposit_update(self, store, chain_first):
        record = await store.create(new_transfer())
        await store.update_status(
            record.id, TransferStatus.BRIDGING, tx_hash=tx_hash(10)
        )
        deposit_hash = tx_hash(11)

        completion = store.update_status(
            record.id,
            TransferStatus.COMPLETED,
            tx_hash=deposit_hash,
            allowed_from=CHAIN_CONFIRMED_FROM,
        )
        depositing = store.update_status(
            record.id,
            TransferStatus.DEPOSITING,
            tx_hash=deposit_hash,
            allowed_from=FORWARD_TRANSITIONS[TransferStatus.DEPOSITING]
            | {TransferStatus.DEPOSITING},
        )
        calls = [completion, depositing] if chain_first else [depositing, completion]
        await asyncio.gather(*calls)

        final = await store.get_by_id(record.id)
        assert final.status == TransferStatus.COMPLETED
        assert final.completed_at is not None
        assert final.bridge_tx_hash == tx_hash(10)
        assert final.deposit_tx_hash == deposit_hash
        assert final.error_message is None

    async def test_concurrent_claims_on_one_hash_keep_a_single_owner(self, store):
        first = await store.create(new_transfer())
        second = await store.create(new_transfer())
        shared_hash = tx_hash(20)

        await asyncio.gather(
            store.update_status(
                first.id, TransferStatus.DEPOSITING, tx_hash=shared_hash
            ),
            store.update_status(
                second.id, TransferStatus.DEPOSITING, tx_hash=shared_hash
            ),
        )

        owners = [
            r
            for r in (
                await store.get_by_id(first.id),
                await store.get_by_id(second.id),
            )
            if r.deposit_tx_hash == shared_hash
        ]
        assert len(owners) == 1
        assert (await store.get_by_tx_hash(shared_hash)).id == owners[0].id
