"""
EVM chain client implementation.

Read-only RPC client for the destination chain: stablecoin balances,
receipt verification and asset bridge deposit logs.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound, Web3Exception

from passerelle.domain.exceptions import BlockchainError
from passerelle.domain.services.i_chain_reader import (
    IChainReader,
    TransactionVerification,
)
from passerelle.domain.services.i_deposit_event_source import DepositEvent
from passerelle.infrastructure.monitoring import get_logger, metrics
from passerelle.infrastructure.resilience import CircuitBreaker
from passerelle.infrastructure.resilience.circuit_breaker import CircuitBreakerError

logger = get_logger(__name__)

# keccak("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

TRANSIENT_RPC_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value)
    if text.startswith(("0x", "0X")):
        text = text[2:]
    return bytes.fromhex(text)


def _to_hex(value: Any) -> str:
    return "0x" + _to_bytes(value).hex()


def _topic_address(topic: Any) -> str:
    """Last 20 bytes of an indexed address topic."""
    return "0x" + _to_bytes(topic)[-20:].hex()


def _address_topic(address: str) -> str:
    return "0x" + "0" * 24 + address.lower()[2:]


def parse_transfer_log(log: Any) -> Optional[Tuple[str, str, str, int]]:
    """
    Decode an ERC20 Transfer log.

    Returns:
        (token, sender, recipient, amount) or None if log is not a Transfer
    """
    topics = log.get("topics") or []
    if len(topics) != 3 or _to_hex(topics[0]) != TRANSFER_TOPIC:
        return None

    data = _to_bytes(log.get("data") or b"")
    amount = int.from_bytes(data, "big") if data else 0
    return (
        str(log["address"]).lower(),
        _topic_address(topics[1]),
        _topic_address(topics[2]),
        amount,
    )


class EvmChainClient(IChainReader):
    """
    Destination chain RPC client built on AsyncWeb3.

    Transient transport errors are retried with exponential backoff;
    repeated failures open a circuit breaker so callers fail fast.
    """

    def __init__(
        self,
        rpc_url: str,
        token_address: str,
        bridge_address: str,
        confirmations: int = 1,
        timeout: float = 15.0,
        max_retries: int = 3,
        circuit_breaker: Optional[CircuitBreaker] = None,
        web3: Optional[AsyncWeb3] = None,
    ):
        """
        Initialize chain client.

        Args:
            rpc_url: JSON-RPC endpoint
            token_address: Stablecoin contract
            bridge_address: Trading venue asset bridge
            confirmations: Blocks required before a receipt counts
            timeout: Request timeout in seconds
            max_retries: Attempts for transient failures
            circuit_breaker: Breaker guarding the RPC
            web3: Preconfigured AsyncWeb3 (tests)
        """
        self.rpc_url = rpc_url
        self.token_address = token_address.lower()
        self.bridge_address = bridge_address.lower()
        self.confirmations = max(0, confirmations)
        self.max_retries = max(1, max_retries)
        self._breaker = circuit_breaker or CircuitBreaker(
            name="chain_rpc",
            failure_threshold=5,
            recovery_timeout=30.0,
            expected_exception=TRANSIENT_RPC_ERRORS,
        )
        self._owns_provider = web3 is None
        self._w3 = web3 or AsyncWeb3(
            AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            )
        )

    async def _call(
        self,
        operation: str,
        func: Callable[..., Awaitable[Any]],
        *args,
    ) -> Any:
        """Run an RPC call with retries, circuit breaker and metrics."""
        metrics.blockchain_requests_total.labels(operation=operation).inc()
        start = time.monotonic()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(TRANSIENT_RPC_ERRORS),
                reraise=True,
            ):
                with attempt:
                    return await self._breaker.call(func, *args)
        except TransactionNotFound:
            raise
        except CircuitBreakerError as e:
            metrics.blockchain_errors_total.labels(
                operation=operation, error_type="circuit_open"
            ).inc()
            raise BlockchainError(str(e), code="CIRCUIT_OPEN") from e
        except (*TRANSIENT_RPC_ERRORS, Web3Exception, ValueError) as e:
            metrics.blockchain_errors_total.labels(
                operation=operation, error_type=type(e).__name__
            ).inc()
            logger.warning(f"Chain RPC {operation} failed: {e}")
            raise BlockchainError(f"RPC {operation} failed: {e}") from e
        finally:
            metrics.blockchain_request_duration_seconds.labels(
                operation=operation
            ).observe(time.monotonic() - start)

    async def _latest_block(self) -> int:
        return await self._w3.eth.block_number

    async def get_block_number(self) -> int:
        """
        Get the latest block number.

        Raises:
            BlockchainError: If query fails
        """
        return int(await self._call("block_number", self._latest_block))

    async def get_token_balance(self, address: str) -> int:
        """Get stablecoin balance of an address in atomic units."""
        contract = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self.token_address),
            abi=ERC20_ABI,
        )
        balance_of = contract.functions.balanceOf(
            AsyncWeb3.to_checksum_address(address)
        )
        return int(await self._call("balance_of", balance_of.call))

    async def verify_transaction(
        self,
        tx_hash: str,
        expected_amount: Optional[int] = None,
        expected_recipient: Optional[str] = None,
    ) -> TransactionVerification:
        """
        Verify a stablecoin transfer by reading its receipt.

        The receipt must have status 1, enough confirmations, and a
        Transfer log from the configured token to expected_recipient
        (when given) of at least expected_amount (when given).
        """
        tx_hash = tx_hash.lower()
        try:
            receipt = await self._call(
                "get_transaction_receipt",
                self._w3.eth.get_transaction_receipt,
                tx_hash,
            )
        except TransactionNotFound:
            receipt = None

        if not receipt:
            return TransactionVerification(
                tx_hash=tx_hash,
                confirmed=False,
                success=False,
                reason="Transaction not found",
            )

        block_number = receipt.get("blockNumber")
        if receipt.get("status") != 1:
            return TransactionVerification(
                tx_hash=tx_hash,
                confirmed=True,
                success=False,
                block_number=block_number,
                reason="Transaction reverted",
            )

        if self.confirmations > 1 and block_number is not None:
            head = await self.get_block_number()
            if head - block_number + 1 < self.confirmations:
                return TransactionVerification(
                    tx_hash=tx_hash,
                    confirmed=False,
                    success=True,
                    block_number=block_number,
                    reason=f"Awaiting {self.confirmations} confirmations",
                )

        recipient = expected_recipient.lower() if expected_recipient else None
        match = None
        for log in receipt.get("logs") or []:
            transfer = parse_transfer_log(log)
            if transfer is None or transfer[0] != self.token_address:
                continue
            if recipient is not None and transfer[2] != recipient:
                continue
            if match is None or transfer[3] > match[3]:
                match = transfer

        if match is None:
            return TransactionVerification(
                tx_hash=tx_hash,
                confirmed=True,
                success=True,
                block_number=block_number,
                reason="No matching token transfer in receipt",
            )

        token, sender, to, amount = match
        reason = None
        if expected_amount is not None and amount < expected_amount:
            reason = f"Transferred {amount} is below expected {expected_amount}"

        return TransactionVerification(
            tx_hash=tx_hash,
            confirmed=True,
            success=True,
            block_number=block_number,
            token=token,
            sender=sender,
            recipient=to,
            amount=amount,
            reason=reason,
        )

    async def get_bridge_deposits(
        self,
        from_block: int,
        to_block: int,
    ) -> List[DepositEvent]:
        """
        Fetch stablecoin transfers into the asset bridge.

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)

        Returns:
            DepositEvents in log order
        """
        params = {
            "fromBlock": from_block,
            "toBlock": to_block,
            "address": AsyncWeb3.to_checksum_address(self.token_address),
            "topics": [TRANSFER_TOPIC, None, _address_topic(self.bridge_address)],
        }
        logs = await self._call("get_logs", self._w3.eth.get_logs, params)

        events = []
        for log in logs:
            transfer = parse_transfer_log(log)
            if transfer is None:
                continue
            _, sender, _, amount = transfer
            events.append(
                DepositEvent(
                    tx_hash=_to_hex(log["transactionHash"]),
                    log_index=int(log["logIndex"]),
                    user_address=sender,
                    amount=amount,
                    block_number=int(log["blockNumber"]),
                )
            )
        return events

    async def health_check(self) -> bool:
        """Check RPC connectivity."""
        try:
            await self.get_block_number()
            return True
        except BlockchainError:
            return False

    async def close(self) -> None:
        """Close the HTTP provider session if this client created it."""
        if self._owns_provider:
            await self._w3.provider.disconnect()
