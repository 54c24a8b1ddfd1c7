"""
Transfer lifecycle orchestrator.

Drives one transfer attempt through quote, bridge and deposit, applying
pure state transitions and performing the side effects around them.
"""

import asyncio
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    wait_exponential,
)

from passerelle.application.lifecycle import state_machine as sm
from passerelle.application.lifecycle.safety_guard import (
    MINIMUM_DEPOSIT_USD,
    evaluate,
)
from passerelle.application.lifecycle.state_machine import (
    LifecycleErrorCode,
    LifecycleState,
    Phase,
)
from passerelle.domain.entities.transfer_record import NewTransfer, TransferStatus
from passerelle.domain.exceptions import (
    BlockchainError,
    BridgeFailedError,
    NoGasError,
    ValidationError,
)
from passerelle.domain.services import (
    IChainReader,
    IDepositExecutor,
    IRouteEngine,
    ITransferNotifier,
    QuoteRequest,
)
from passerelle.infrastructure.monitoring import get_logger, metrics

logger = get_logger(__name__)


class TransferLifecycle:
    """
    Owns one LifecycleState and performs the I/O around transitions.

    Persistence goes through the notifier and is best effort: a failed
    notification is logged and never blocks an on-chain step already
    underway.
    """

    def __init__(
        self,
        route_engine: IRouteEngine,
        chain_reader: IChainReader,
        deposit_executor: IDepositExecutor,
        notifier: ITransferNotifier,
        minimum_deposit: Decimal = MINIMUM_DEPOSIT_USD,
        balance_poll_initial_delay: float = 1.0,
        balance_poll_max_delay: float = 8.0,
        balance_poll_max_wait: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize lifecycle.

        Args:
            route_engine: Bridge quoting and execution
            chain_reader: Destination chain reads
            deposit_executor: Deposit transaction submission
            notifier: Transfer API persistence
            minimum_deposit: Safe minimum net amount (USD)
            balance_poll_initial_delay: First backoff delay (seconds)
            balance_poll_max_delay: Backoff ceiling (seconds)
            balance_poll_max_wait: Give up on a zero balance after this
            sleep: Awaitable sleep used between balance polls
        """
        self._engine = route_engine
        self._chain = chain_reader
        self._executor = deposit_executor
        self._notifier = notifier
        self._minimum_deposit = minimum_deposit
        self._poll_initial_delay = balance_poll_initial_delay
        self._poll_max_delay = balance_poll_max_delay
        self._poll_max_wait = balance_poll_max_wait
        self._sleep = sleep

        self._state = LifecycleState()
        self._request: Optional[QuoteRequest] = None
        self._new_transfer: Optional[NewTransfer] = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    # ================================================================
    # Caller actions
    # ================================================================

    async def request_quote(self, request: QuoteRequest) -> LifecycleState:
        """Fetch a route and run the safety guard on it."""
        self._state = sm.request_quote(self._state)
        self._request = request

        try:
            quote = await self._engine.get_quote(request)
            self._new_transfer = NewTransfer(
                user_address=request.user_address,
                source_chain=request.source_chain,
                source_token=request.source_token,
                source_amount=quote.source_amount,
                expected_destination_amount=quote.destination_amount,
            )
        except (BridgeFailedError, ValidationError) as e:
            self._state = sm.quote_failed(self._state, e.message)
            self._record_error()
            return self._state

        guard = evaluate(quote, self._minimum_deposit)
        self._state = sm.attach_quote(self._state, quote, guard)
        if not guard.is_safe:
            self._record_error()
        return self._state

    async def accept(self) -> LifecycleState:
        """
        Accept the guarded quote.

        For an unsafe quote the first call only arms the confirmation.
        Once BRIDGING, runs the bridge and then the deposit.
        """
        self._state = sm.accept(self._state)
        if self._state.phase != Phase.BRIDGING:
            return self._state
        return await self._run_bridge()

    async def retry_deposit(self) -> LifecycleState:
        """Re-run only the deposit step with the last realized amount."""
        self._state = sm.retry_deposit(self._state)
        logger.info(
            f"Retrying deposit of {self._state.realized_amount} "
            f"for transfer {self._state.transfer_id}"
        )
        return await self._run_deposit()

    def cancel(self) -> LifecycleState:
        self._state = sm.cancel(self._state)
        self._request = None
        self._new_transfer = None
        return self._state

    def reset(self) -> LifecycleState:
        self._state = sm.reset(self._state)
        self._request = None
        self._new_transfer = None
        return self._state

    # ================================================================
    # Steps
    # ================================================================

    async def _run_bridge(self) -> LifecycleState:
        transfer_id = await self._notify(
            "create_transfer", self._notifier.create_transfer, self._new_transfer
        )
        if transfer_id is not None:
            self._state = sm.bind_transfer(self._state, transfer_id)
            await self._persist(TransferStatus.BRIDGING)

        try:
            result = await self._engine.execute_route(self._state.quote)
        except BridgeFailedError as e:
            self._state = sm.bridge_failed(self._state, e.message)
            self._record_error()
            await self._persist(TransferStatus.FAILED, error_message=e.message)
            return self._state

        observed = await self._await_destination_balance()
        if observed < result.destination_amount:
            logger.warning(
                f"Observed balance {observed} below reported "
                f"{result.destination_amount}; using observed amount"
            )

        self._state = sm.bridge_completed(
            self._state,
            reported_amount=result.destination_amount,
            observed_amount=observed,
            bridge_tx_hash=result.tx_hash,
        )
        if self._state.error == LifecycleErrorCode.BRIDGE_FAILED:
            self._record_error()
            await self._persist(
                TransferStatus.FAILED, error_message=self._state.error_message
            )
            return self._state

        if self._state.transfer_id is not None:
            await self._notify(
                "bridge_success",
                self._notifier.notify_bridge_success,
                self._state.transfer_id,
                result.tx_hash,
                self._state.realized_amount,
            )

        return await self._run_deposit()

    async def _run_deposit(self) -> LifecycleState:
        amount = self._state.realized_amount

        try:
            tx_hash = await self._executor.submit_deposit(amount)
        except NoGasError as e:
            return self._deposit_failed(no_gas=True, message=e.message)
        except Exception as e:
            logger.error(f"Deposit submission failed: {e}", exc_info=True)
            return self._deposit_failed(message=str(e) or None)

        self._state = sm.deposit_submitted(self._state, tx_hash)
        await self._persist(TransferStatus.DEPOSITING, tx_hash=tx_hash)

        try:
            confirmed = await self._executor.wait_for_confirmation(tx_hash)
        except Exception as e:
            logger.error(f"Deposit confirmation failed: {e}", exc_info=True)
            return self._deposit_failed(message=str(e) or None)

        if not confirmed:
            return self._deposit_failed(message="Deposit transaction reverted")

        self._state = sm.deposit_confirmed(self._state)
        if self._state.transfer_id is not None:
            await self._notify(
                "deposit_success",
                self._notifier.notify_deposit_success,
                self._state.transfer_id,
                tx_hash,
                amount,
            )
        logger.info(
            "transfer.deposit_confirmed",
            extra={
                "transfer_id": str(self._state.transfer_id),
                "tx_hash": tx_hash,
                "amount": str(amount),
            },
        )
        return self._state

    def _deposit_failed(
        self,
        no_gas: bool = False,
        message: Optional[str] = None,
    ) -> LifecycleState:
        # Record stays DEPOSITING: the funds sit one hop short of the venue
        self._state = sm.deposit_failed(self._state, no_gas=no_gas, message=message)
        self._record_error()
        return self._state

    async def _await_destination_balance(self) -> int:
        """Poll the destination balance until nonzero or max wait passes."""
        retrying = AsyncRetrying(
            stop=stop_after_delay(self._poll_max_wait),
            wait=wait_exponential(
                multiplier=self._poll_initial_delay, max=self._poll_max_delay
            ),
            retry=(
                retry_if_result(lambda balance: balance == 0)
                | retry_if_exception_type(BlockchainError)
            ),
            retry_error_callback=lambda retry_state: 0,
            sleep=self._sleep,
        )
        return await retrying(
            self._chain.get_token_balance, self._request.destination_address
        )

    # ================================================================
    # Best-effort persistence
    # ================================================================

    async def _persist(
        self,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        if self._state.transfer_id is None:
            return
        await self._notify(
            "update_status",
            self._notifier.update_status,
            self._state.transfer_id,
            status,
            tx_hash,
            error_message,
        )

    async def _notify(
        self,
        operation: str,
        func: Callable[..., Awaitable[Any]],
        *args,
    ) -> Any:
        try:
            return await func(*args)
        except Exception as e:
            metrics.notification_failures_total.labels(operation=operation).inc()
            logger.warning(
                f"Transfer API {operation} failed, continuing: {e}",
                extra={"transfer_id": str(self._state.transfer_id)},
            )
            return None

    def _record_error(self) -> None:
        if self._state.error is not None:
            metrics.lifecycle_errors_total.labels(error=self._state.error.value).inc()
            logger.warning(
                f"Transfer lifecycle error {self._state.error.value}: "
                f"{self._state.error_message}",
                extra={"transfer_id": str(self._state.transfer_id)},
            )
