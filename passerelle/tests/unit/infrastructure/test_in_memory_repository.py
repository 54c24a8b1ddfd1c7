"""
Unit tests for InMemoryTransferRecordRepository.
"""

import asyncio

from helpers.fakes import new_transfer, tx_hash
from passerelle.domain.entities.transfer_record import TransferStatus
from passerelle.infrastructure.persistence.repositories import (
    InMemoryTransferRecordRepository,
)


class TestInMemoryRepository:
    async def test_returned_records_are_copies(self, repository):
        record = await repository.create(new_transfer())
        record.status = TransferStatus.FAILED

        assert (await repository.get_by_id(record.id)).status == TransferStatus.PENDING

    async def test_hash_set_once(self, repository):
        record = await repository.create(new_transfer())
        await repository.update_status(
            record.id, TransferStatus.DEPOSITING, tx_hash=tx_hash(1)
        )

        updated = await repository.update_status(
            record.id, TransferStatus.COMPLETED, tx_hash=tx_hash(2)
        )

        assert updated.deposit_tx_hash == tx_hash(1)
        assert await repository.get_by_tx_hash(tx_hash(2)) is None

    async def test_concurrent_external_deposits_create_one_record(self):
        repository = InMemoryTransferRecordRepository()

        results = await asyncio.gather(
            *(
                repository.record_external_deposit(new_transfer(), tx_hash(3))
                for _ in range(5)
            )
        )

        assert sum(1 for _, created in results if created) == 1
        assert len({record.id for record, _ in results}) == 1
        assert (await repository.aggregate_stats()).total == 1

    async def test_malformed_amount_skipped_in_volume(self, repository):
        record = await repository.create(new_transfer(expected="500"))
        await repository.update_status(record.id, TransferStatus.COMPLETED)
        # Bypass validation to simulate a legacy row
        repository._records[record.id].destination_amount = "n/a"

        stats = await repository.aggregate_stats()

        assert stats.counts_by_status["COMPLETED"] == 1
        assert stats.total_completed_volume == 0

    async def test_clear(self, repository):
        await repository.create(new_transfer())

        await repository.clear()

        assert await repository.get_recent() == []
