"""
Unit tests for EvmChainClient against a fake web3 eth namespace.
"""

from types import SimpleNamespace

import aiohttp
import pytest
from web3.exceptions import TransactionNotFound

from helpers.fakes import BRIDGE, USER, tx_hash
from passerelle.domain.exceptions import BlockchainError
from passerelle.infrastructure.blockchain import (
    TRANSFER_TOPIC,
    EvmChainClient,
    parse_transfer_log,
)
from passerelle.infrastructure.resilience import CircuitBreaker

TOKEN = "0x" + "11" * 20


def address_topic(address: str) -> str:
    return "0x" + "0" * 24 + address.lower()[2:]


def transfer_log(
    sender: str,
    recipient: str,
    amount: int,
    token: str = TOKEN,
    tx: str = tx_hash(1),
    log_index: int = 0,
    block: int = 90,
) -> dict:
    return {
        "address": token,
        "topics": [TRANSFER_TOPIC, address_topic(sender), address_topic(recipient)],
        "data": "0x" + amount.to_bytes(32, "big").hex(),
        "transactionHash": tx,
        "logIndex": log_index,
        "blockNumber": block,
    }


class FakeEth:
    """Subset of AsyncEth used by the client."""

    def __init__(self):
        self.head = 100
        self.head_errors = []
        self.receipts = {}
        self.logs = []
        self.get_logs_params = []

    @property
    def block_number(self):
        return self._block_number()

    async def _block_number(self):
        if self.head_errors:
            raise self.head_errors.pop(0)
        return self.head

    async def get_transaction_receipt(self, tx):
        if tx not in self.receipts:
            raise TransactionNotFound(f"Transaction {tx} not found")
        return self.receipts[tx]

    async def get_logs(self, params):
        self.get_logs_params.append(params)
        return self.logs


class TestEvmChainClient:
    # ================================================================
    # Helper Methods
    # ================================================================

    def _client(self, eth: FakeEth, **kwargs) -> EvmChainClient:
        kwargs.setdefault("max_retries", 1)
        return EvmChainClient(
            rpc_url="http://localhost:8545",
            token_address=TOKEN,
            bridge_address=BRIDGE,
            web3=SimpleNamespace(eth=eth),
            **kwargs,
        )

    def _receipt(self, *logs, status: int = 1, block: int = 90) -> dict:
        return {"status": status, "blockNumber": block, "logs": list(logs)}

    # ================================================================
    # verify_transaction
    # ================================================================

    async def test_verified_transfer(self):
        eth = FakeEth()
        eth.receipts[tx_hash(1)] = self._receipt(transfer_log(USER, BRIDGE, 5_000_000))
        client = self._client(eth)

        result = await client.verify_transaction(
            tx_hash(1).upper().replace("0X", "0x"),
            expected_amount=5_000_000,
            expected_recipient=BRIDGE,
        )

        assert result.verified
        assert result.tx_hash == tx_hash(1)
        assert result.sender == USER
        assert result.recipient == BRIDGE
        assert result.amount == 5_000_000
        assert result.block_number == 90

    async def test_missing_receipt(self):
        client = self._client(FakeEth())

        result = await client.verify_transaction(tx_hash(9))

        assert not result.verified
        assert not result.confirmed
        assert result.reason == "Transaction not found"

    async def test_reverted(self):
        eth = FakeEth()
        eth.receipts[tx_hash(1)] = self._receipt(status=0)

        result = await self._client(eth).verify_transaction(tx_hash(1))

        assert result.confirmed
        assert not result.success
        assert result.reason == "Transaction reverted"

    async def test_wrong_recipient(self):
        eth = FakeEth()
        eth.receipts[tx_hash(1)] = self._receipt(transfer_log(USER, USER, 5_000_000))

        result = await self._client(eth).verify_transaction(
            tx_hash(1), expected_recipient=BRIDGE
        )

        assert not result.verified
        assert result.reason == "No matching token transfer in receipt"

    async def test_other_token_ignored(self):
        eth = FakeEth()
        eth.receipts[tx_hash(1)] = self._receipt(
            transfer_log(USER, BRIDGE, 5_000_000, token="0x" + "22" * 20)
        )

        result = await self._client(eth).verify_transaction(tx_hash(1))

        assert not result.verified

    async def test_amount_below_expected(self):
        eth = FakeEth()
        eth.receipts[tx_hash(1)] = self._receipt(transfer_log(USER, BRIDGE, 100))

        result = await self._client(eth).verify_transaction(
            tx_hash(1), expected_amount=101
        )

        assert not result.verified
        assert result.amount == 100
        assert "below expected" in result.reason

    async def test_awaiting_confirmations(self):
        eth = FakeEth()
        eth.head = 91
        eth.receipts[tx_hash(1)] = self._receipt(transfer_log(USER, BRIDGE, 1))

        result = await self._client(eth, confirmations=3).verify_transaction(
            tx_hash(1)
        )

        assert not result.confirmed
        assert result.reason == "Awaiting 3 confirmations"

    # ================================================================
    # get_bridge_deposits / RPC errors
    # ================================================================

    async def test_bridge_deposits(self):
        eth = FakeEth()
        eth.logs = [
            transfer_log(USER, BRIDGE, 7, tx=tx_hash(3), log_index=2, block=95),
            {"address": TOKEN, "topics": [], "data": "0x"},
        ]
        client = self._client(eth)

        events = await client.get_bridge_deposits(90, 99)

        assert len(events) == 1
        event = events[0]
        assert event.tx_hash == tx_hash(3)
        assert event.log_index == 2
        assert event.user_address == USER
        assert event.amount == 7
        assert event.block_number == 95
        params = eth.get_logs_params[0]
        assert params["fromBlock"] == 90
        assert params["toBlock"] == 99
        assert params["topics"][2] == address_topic(BRIDGE)

    async def test_transient_error_retried(self):
        eth = FakeEth()
        eth.head_errors = [aiohttp.ClientConnectionError("reset")]

        assert await self._client(eth, max_retries=2).get_block_number() == 100

    async def test_rpc_failure_raises_blockchain_error(self):
        eth = FakeEth()
        eth.head_errors = [aiohttp.ClientConnectionError("refused")]

        with pytest.raises(BlockchainError) as exc:
            await self._client(eth).get_block_number()
        assert exc.value.code == "BLOCKCHAIN_ERROR"

    async def test_open_circuit(self):
        eth = FakeEth()
        eth.head_errors = [aiohttp.ClientConnectionError("refused")]
        breaker = CircuitBreaker(
            name="chain_test",
            failure_threshold=1,
            recovery_timeout=300,
            expected_exception=aiohttp.ClientError,
        )
        client = self._client(eth, circuit_breaker=breaker)

        with pytest.raises(BlockchainError):
            await client.get_block_number()
        with pytest.raises(BlockchainError) as exc:
            await client.get_block_number()

        assert exc.value.code == "CIRCUIT_OPEN"
        assert not await client.health_check()

    async def test_health_check(self):
        assert await self._client(FakeEth()).health_check()


class TestParseTransferLog:
    def test_decodes_transfer(self):
        token, sender, recipient, amount = parse_transfer_log(
            transfer_log(USER, BRIDGE, 42)
        )

        assert token == TOKEN
        assert sender == USER
        assert recipient == BRIDGE
        assert amount == 42

    def test_accepts_bytes_topics(self):
        log = transfer_log(USER, BRIDGE, 42)
        log["topics"] = [bytes.fromhex(t[2:]) for t in log["topics"]]
        log["data"] = bytes.fromhex(log["data"][2:])

        assert parse_transfer_log(log)[3] == 42

    def test_rejects_other_events(self):
        log = transfer_log(USER, BRIDGE, 42)
        log["topics"][0] = "0x" + "00" * 32

        assert parse_transfer_log(log) is None
