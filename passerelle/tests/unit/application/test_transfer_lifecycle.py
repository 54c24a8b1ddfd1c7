"""
Unit tests for the TransferLifecycle orchestrator.

Balance polling uses real (tiny) delays.
"""

from decimal import Decimal

import pytest

from helpers.fakes import (
    USER,
    FakeChainReader,
    FakeDepositExecutor,
    FakeRouteEngine,
    RecordingNotifier,
    quote,
    quote_request,
    tx_hash,
)
from passerelle.application.lifecycle import TransferLifecycle
from passerelle.application.lifecycle.state_machine import LifecycleErrorCode, Phase
from passerelle.domain.entities.transfer_record import TransferStatus
from passerelle.domain.exceptions import (
    BridgeFailedError,
    CancellationNotAllowedError,
    NoGasError,
)
from passerelle.domain.services import RouteResult


class TestTransferLifecycle:
    """Quote, bridge and deposit orchestration."""

    # ================================================================
    # Helper Methods
    # ================================================================

    def _lifecycle(
        self,
        engine: FakeRouteEngine = None,
        chain: FakeChainReader = None,
        executor: FakeDepositExecutor = None,
        notifier: RecordingNotifier = None,
    ) -> TransferLifecycle:
        self.engine = engine or FakeRouteEngine()
        self.chain = chain or FakeChainReader()
        self.executor = executor or FakeDepositExecutor()
        self.notifier = notifier or RecordingNotifier()
        if chain is None:
            self.chain.set_balances(USER, 9_800_000)
        return TransferLifecycle(
            route_engine=self.engine,
            chain_reader=self.chain,
            deposit_executor=self.executor,
            notifier=self.notifier,
            minimum_deposit=Decimal("5.10"),
            balance_poll_initial_delay=0.001,
            balance_poll_max_delay=0.002,
            balance_poll_max_wait=0.05,
        )

    async def _run(self, lifecycle: TransferLifecycle):
        await lifecycle.request_quote(quote_request())
        return await lifecycle.accept()

    # ================================================================
    # Happy path
    # ================================================================

    async def test_full_transfer_succeeds(self):
        lifecycle = self._lifecycle()

        state = await self._run(lifecycle)

        assert state.phase == Phase.SUCCESS
        assert state.error is None
        assert state.transfer_id == self.notifier.transfer_id
        assert state.realized_amount == 9_800_000
        assert self.executor.submitted == [9_800_000]
        assert self.notifier.names() == [
            "create_transfer",
            "update_status",
            "bridge_success",
            "update_status",
            "deposit_success",
        ]
        assert self.notifier.calls[1][1] == TransferStatus.BRIDGING
        assert self.notifier.calls[3][1] == TransferStatus.DEPOSITING
        assert self.notifier.calls[3][2] == state.deposit_tx_hash

    async def test_lower_observed_balance_is_deposited(self):
        chain = FakeChainReader()
        chain.set_balances(USER, 9_500_000)
        lifecycle = self._lifecycle(chain=chain)

        state = await self._run(lifecycle)

        assert state.phase == Phase.SUCCESS
        assert state.realized_amount == 9_500_000
        assert self.executor.submitted == [9_500_000]
        assert ("bridge_success", tx_hash(1), 9_500_000) in self.notifier.calls

    async def test_polls_until_balance_arrives(self):
        chain = FakeChainReader()
        chain.set_balances(USER, 0, 0, 9_800_000)
        lifecycle = self._lifecycle(chain=chain)

        state = await self._run(lifecycle)

        assert state.phase == Phase.SUCCESS
        assert chain.balance_calls == 3

    # ================================================================
    # Bridge failures
    # ================================================================

    async def test_zero_balance_fails_bridge(self):
        chain = FakeChainReader()
        chain.set_balances(USER, 0)
        lifecycle = self._lifecycle(chain=chain)

        state = await self._run(lifecycle)

        assert state.phase == Phase.IDLE
        assert state.error == LifecycleErrorCode.BRIDGE_FAILED
        assert self.executor.submitted == []
        assert self.notifier.calls[-1][0:2] == ("update_status", TransferStatus.FAILED)

    async def test_route_failure_marks_failed(self):
        engine = FakeRouteEngine(execute_error=BridgeFailedError("route reverted"))
        lifecycle = self._lifecycle(engine=engine)

        state = await self._run(lifecycle)

        assert state.phase == Phase.IDLE
        assert state.error == LifecycleErrorCode.BRIDGE_FAILED
        assert state.error_message == "route reverted"
        assert self.notifier.calls[-1] == (
            "update_status",
            TransferStatus.FAILED,
            None,
            "route reverted",
        )

    async def test_quote_failure_returns_idle(self):
        engine = FakeRouteEngine(quote_error=BridgeFailedError("no route"))
        lifecycle = self._lifecycle(engine=engine)

        state = await lifecycle.request_quote(quote_request())

        assert state.phase == Phase.IDLE
        assert state.error == LifecycleErrorCode.BRIDGE_FAILED
        assert self.notifier.calls == []

    # ================================================================
    # Deposit failures and retry
    # ================================================================

    async def test_deposit_failure_then_retry_skips_bridge(self):
        executor = FakeDepositExecutor()
        executor.submit_errors.append(RuntimeError("nonce too low"))
        lifecycle = self._lifecycle(executor=executor)

        failed = await self._run(lifecycle)

        assert failed.phase == Phase.DEPOSITING
        assert failed.error == LifecycleErrorCode.DEPOSIT_FAILED
        assert failed.error_message == "nonce too low"

        state = await lifecycle.retry_deposit()

        assert state.phase == Phase.SUCCESS
        assert self.engine.executions == 1
        assert executor.submitted == [9_800_000, 9_800_000]

    async def test_no_gas(self):
        executor = FakeDepositExecutor()
        executor.submit_errors.append(NoGasError())
        lifecycle = self._lifecycle(executor=executor)

        state = await self._run(lifecycle)

        assert state.phase == Phase.DEPOSITING
        assert state.error == LifecycleErrorCode.NO_GAS
        assert state.can_retry_deposit

    async def test_reverted_deposit(self):
        executor = FakeDepositExecutor()
        executor.confirmations.append(False)
        lifecycle = self._lifecycle(executor=executor)

        state = await self._run(lifecycle)

        assert state.error == LifecycleErrorCode.DEPOSIT_FAILED
        assert state.deposit_tx_hash is not None
        assert "deposit_success" not in self.notifier.names()

    # ================================================================
    # Guard, cancel and notifications
    # ================================================================

    async def test_unsafe_quote_requires_two_accepts(self):
        engine = FakeRouteEngine(route_quote=quote(destination_usd="5.05"))
        lifecycle = self._lifecycle(engine=engine)

        guarded = await lifecycle.request_quote(quote_request())
        assert guarded.error == LifecycleErrorCode.BELOW_MINIMUM

        armed = await lifecycle.accept()
        assert armed.phase == Phase.SAFETY_GUARD
        assert engine.executions == 0

        state = await lifecycle.accept()
        assert state.phase == Phase.SUCCESS
        assert engine.executions == 1

    async def test_cancel_before_dispatch(self):
        lifecycle = self._lifecycle()
        await lifecycle.request_quote(quote_request())

        assert lifecycle.cancel().phase == Phase.IDLE

    async def test_cancel_after_failure_in_deposit_rejected(self):
        executor = FakeDepositExecutor()
        executor.submit_errors.append(RuntimeError("rpc down"))
        lifecycle = self._lifecycle(executor=executor)
        await self._run(lifecycle)

        with pytest.raises(CancellationNotAllowedError):
            lifecycle.cancel()

    async def test_notification_failures_do_not_block(self):
        lifecycle = self._lifecycle(notifier=RecordingNotifier(fail=True))

        state = await self._run(lifecycle)

        assert state.phase == Phase.SUCCESS
        assert state.transfer_id is None
        assert self.notifier.names() == ["create_transfer"]

    async def test_reset_then_new_attempt(self):
        lifecycle = self._lifecycle()
        await self._run(lifecycle)
        lifecycle.reset()

        self.engine.result = RouteResult(
            tx_hash=tx_hash(9), destination_amount=9_800_000
        )
        state = await self._run(lifecycle)

        assert state.phase == Phase.SUCCESS
        assert state.bridge_tx_hash == tx_hash(9)
