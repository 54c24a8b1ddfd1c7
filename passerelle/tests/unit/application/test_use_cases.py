"""
Unit tests for transfer use cases against the in-memory store.
"""

from uuid import uuid4

import pytest

from helpers.fakes import BRIDGE, OTHER_USER, USER, new_transfer, tx_hash
from passerelle.application.use_cases import (
    ConfirmBridgeSuccess,
    ConfirmDepositSuccess,
    CreateTransfer,
    GetRecentTransfers,
    GetTransfer,
    GetTransferStats,
    ListUserTransfers,
    UpdateTransferStatus,
    VerifyTransaction,
)
from passerelle.domain.entities.transfer_record import TransferStatus
from passerelle.domain.exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    ValidationError,
    VerificationFailedError,
)


class TestCreateAndQuery:
    """Creation, lookup, listing and stats."""

    async def test_create_transfer(self, repository):
        record = await CreateTransfer(repository).execute(
            user_address="0x" + "AB" * 20,
            source_chain="base",
            source_token="USDC",
            source_amount="25000000",
            expected_destination_amount="24900000",
        )

        assert record.status == TransferStatus.PENDING
        assert record.user_address == USER
        assert await GetTransfer(repository).execute(record.id) == record

    async def test_create_rejects_bad_amount(self, repository):
        with pytest.raises(ValidationError):
            await CreateTransfer(repository).execute(USER, "base", "USDC", "1.5", "1")

    async def test_get_missing_transfer(self, repository):
        with pytest.raises(EntityNotFoundError):
            await GetTransfer(repository).execute(uuid4())

    async def test_list_user_transfers_paginates_newest_first(self, repository):
        created = [await repository.create(new_transfer()) for _ in range(3)]
        await repository.create(new_transfer(user_address=OTHER_USER))

        result = await ListUserTransfers(repository).execute(USER, page=1, limit=2)

        assert result.total == 3
        assert result.page == 1
        assert result.limit == 2
        assert [r.id for r in result.transfers] == [created[2].id, created[1].id]

        second = await ListUserTransfers(repository).execute(USER, page=2, limit=2)
        assert [r.id for r in second.transfers] == [created[0].id]

    async def test_list_caps_limit(self, repository):
        result = await ListUserTransfers(repository).execute(USER, limit=1000)
        assert result.limit == 100

    async def test_list_rejects_bad_address(self, repository):
        with pytest.raises(ValidationError):
            await ListUserTransfers(repository).execute("not-an-address")

    async def test_stats_and_recent(self, repository):
        done = await repository.create(new_transfer(expected="1000"))
        await repository.update_status(
            done.id, TransferStatus.COMPLETED, tx_hash=tx_hash(1)
        )
        await repository.create(new_transfer())

        stats = await GetTransferStats(repository).execute()
        recent = await GetRecentTransfers(repository).execute(limit=0)

        assert stats.total == 2
        assert stats.counts_by_status["COMPLETED"] == 1
        assert stats.counts_by_status["PENDING"] == 1
        assert stats.total_completed_volume == 1000
        assert len(recent) == 1


class TestUpdateTransferStatus:
    """Forward-only PATCH semantics."""

    async def test_forward_update(self, repository):
        record = await repository.create(new_transfer())

        updated = await UpdateTransferStatus(repository).execute(
            record.id, TransferStatus.BRIDGING, tx_hash=tx_hash(1)
        )

        assert updated.status == TransferStatus.BRIDGING
        assert updated.bridge_tx_hash == tx_hash(1)

    async def test_backward_update_rejected(self, repository):
        record = await repository.create(new_transfer())
        await repository.update_status(record.id, TransferStatus.DEPOSITING)

        with pytest.raises(InvalidTransitionError) as exc:
            await UpdateTransferStatus(repository).execute(
                record.id, TransferStatus.BRIDGING
            )
        assert exc.value.code == "INVALID_TRANSITION"

    async def test_leaving_terminal_rejected(self, repository):
        record = await repository.create(new_transfer())
        await repository.update_status(record.id, TransferStatus.FAILED)

        with pytest.raises(InvalidTransitionError):
            await UpdateTransferStatus(repository).execute(
                record.id, TransferStatus.COMPLETED
            )

    async def test_repeating_terminal_status_is_noop(self, repository):
        record = await repository.create(new_transfer())
        failed = await repository.update_status(
            record.id, TransferStatus.FAILED, error_message="first"
        )

        result = await UpdateTransferStatus(repository).execute(
            record.id, TransferStatus.FAILED, error_message="second"
        )

        assert result == failed
        assert result.error_message == "first"

    async def test_missing_transfer(self, repository):
        with pytest.raises(EntityNotFoundError):
            await UpdateTransferStatus(repository).execute(
                uuid4(), TransferStatus.BRIDGING
            )

    async def test_hash_owned_by_other_record_is_ignored(self, repository):
        first = await repository.create(new_transfer())
        second = await repository.create(new_transfer())
        await repository.update_status(
            first.id, TransferStatus.BRIDGING, tx_hash=tx_hash(5)
        )

        result = await UpdateTransferStatus(repository).execute(
            second.id, TransferStatus.BRIDGING, tx_hash=tx_hash(5)
        )

        assert result.status == TransferStatus.PENDING
        assert result.bridge_tx_hash is None


class TestWebhooks:
    """bridge-success and l1-success confirmation."""

    async def test_bridge_success_moves_to_depositing(self, repository, chain):
        record = await repository.create(new_transfer())
        chain.confirm(tx_hash(1), amount=9_750_000, recipient=USER)

        updated = await ConfirmBridgeSuccess(repository, chain).execute(
            record.id, tx_hash(1), 9_750_000
        )

        assert updated.status == TransferStatus.DEPOSITING
        assert updated.bridge_tx_hash == tx_hash(1)
        assert updated.destination_amount == "9750000"

    async def test_bridge_success_wrong_recipient(self, repository, chain):
        record = await repository.create(new_transfer())
        chain.confirm(tx_hash(1), amount=9_750_000, recipient=OTHER_USER)

        with pytest.raises(VerificationFailedError) as exc:
            await ConfirmBridgeSuccess(repository, chain).execute(
                record.id, tx_hash(1), 9_750_000
            )

        assert exc.value.code == "VERIFICATION_FAILED"
        assert (await repository.get_by_id(record.id)).status == TransferStatus.PENDING

    async def test_bridge_success_amount_too_low(self, repository, chain):
        record = await repository.create(new_transfer())
        chain.confirm(tx_hash(1), amount=100, recipient=USER)

        with pytest.raises(VerificationFailedError):
            await ConfirmBridgeSuccess(repository, chain).execute(
                record.id, tx_hash(1), 9_750_000
            )

    async def test_bridge_success_after_deposit_is_ignored(self, repository, chain):
        record = await repository.create(new_transfer())
        await repository.update_status(record.id, TransferStatus.DEPOSITING)

        result = await ConfirmBridgeSuccess(repository, chain).execute(
            record.id, tx_hash(1), 1
        )

        assert result.status == TransferStatus.DEPOSITING
        assert result.bridge_tx_hash is None

    async def test_l1_success_completes(self, repository, chain):
        record = await repository.create(new_transfer())
        await repository.update_status(record.id, TransferStatus.DEPOSITING)
        chain.confirm(tx_hash(2), amount=9_800_000, recipient=BRIDGE)

        updated = await ConfirmDepositSuccess(repository, chain, BRIDGE).execute(
            record.id, tx_hash(2), 9_800_000
        )

        assert updated.status == TransferStatus.COMPLETED
        assert updated.deposit_tx_hash == tx_hash(2)
        assert updated.completed_at is not None

    async def test_l1_success_overrides_timeout_failure(self, repository, chain):
        record = await repository.create(new_transfer())
        await repository.update_status(
            record.id, TransferStatus.FAILED, error_message="Transfer timed out"
        )
        chain.confirm(tx_hash(2), amount=9_800_000, recipient=BRIDGE)

        updated = await ConfirmDepositSuccess(repository, chain, BRIDGE).execute(
            record.id, tx_hash(2), 9_800_000
        )

        assert updated.status == TransferStatus.COMPLETED

    async def test_l1_success_unverified(self, repository, chain):
        record = await repository.create(new_transfer())

        with pytest.raises(VerificationFailedError):
            await ConfirmDepositSuccess(repository, chain, BRIDGE).execute(
                record.id, tx_hash(3), 1
            )

    async def test_l1_success_missing_transfer(self, repository, chain):
        with pytest.raises(EntityNotFoundError):
            await ConfirmDepositSuccess(repository, chain, BRIDGE).execute(
                uuid4(), tx_hash(3), 1
            )


class TestVerifyTransaction:
    async def test_verified(self, chain):
        chain.confirm(tx_hash(4), amount=500, recipient=BRIDGE)

        result = await VerifyTransaction(chain).execute(
            tx_hash(4), expected_amount=500, expected_recipient=BRIDGE
        )

        assert result.verified
        assert result.to_dict()["amount"] == "500"

    async def test_not_found(self, chain):
        result = await VerifyTransaction(chain).execute(tx_hash(5))

        assert not result.verified
        assert result.reason == "Transaction not found"
