"""
Transfer API client implementation.

HTTP client a lifecycle running outside the service uses to persist
transfer progress through the transfer API.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import httpx

from passerelle.domain.entities.transfer_record import NewTransfer, TransferStatus
from passerelle.domain.exceptions import EntityNotFoundError, PasserelleException
from passerelle.domain.services.i_transfer_notifier import ITransferNotifier

API_PREFIX = "/api/transfers"


class TransferApiClient(ITransferNotifier):
    """
    Transfer API client with lazy httpx.AsyncClient initialization.

    Non-2xx responses are raised as PasserelleException carrying the
    error code from the response body.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize API client.

        Args:
            base_url: Service base URL (e.g. http://localhost:8000)
            timeout: Request timeout in seconds
            transport: Optional transport override (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        base_url=self.base_url,
                        timeout=self.timeout,
                        transport=self._transport,
                    )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> Dict[str, Any]:
        client = await self._ensure_client()
        try:
            response = await client.request(
                method, f"{API_PREFIX}{path}", **kwargs
            )
        except httpx.RequestError as e:
            raise PasserelleException(
                f"Transfer API unreachable: {e}", code="TRANSFER_API_ERROR"
            ) from e

        if response.status_code == 404:
            raise EntityNotFoundError("Transfer", path.strip("/"))
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise PasserelleException(
                body.get("message") or response.text,
                code=body.get("error") or "TRANSFER_API_ERROR",
            )
        return response.json()

    async def create_transfer(self, new_transfer: NewTransfer) -> UUID:
        data = await self._request(
            "POST",
            "",
            json={
                "userAddress": new_transfer.user_address,
                "sourceChain": new_transfer.source_chain,
                "sourceToken": new_transfer.source_token,
                "sourceAmount": new_transfer.source_amount,
                "expectedDestinationAmount": new_transfer.expected_destination_amount,
            },
        )
        return UUID(data["id"])

    async def get_transfer(self, transfer_id: UUID) -> Dict[str, Any]:
        return await self._request("GET", f"/{transfer_id}")

    async def get_user_transfers(
        self,
        user_address: str,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        List a user's transfers.

        Returns:
            Tuple of (transfer dicts, total)
        """
        data = await self._request(
            "GET",
            f"/user/{user_address}",
            params={"page": page, "limit": limit},
        )
        return data["transfers"], data["total"]

    async def update_status(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        body: Dict[str, Any] = {"status": status.value}
        if tx_hash:
            body["txHash"] = tx_hash
        if error_message:
            body["errorMessage"] = error_message
        await self._request("PATCH", f"/{transfer_id}/status", json=body)

    async def notify_bridge_success(
        self, transfer_id: UUID, tx_hash: str, amount: int
    ) -> None:
        await self._request(
            "POST",
            "/bridge-success",
            json={
                "transferId": str(transfer_id),
                "txHash": tx_hash,
                "amount": str(amount),
            },
        )

    async def notify_deposit_success(
        self, transfer_id: UUID, tx_hash: str, amount: int
    ) -> None:
        await self._request(
            "POST",
            "/l1-success",
            json={
                "transferId": str(transfer_id),
                "txHash": tx_hash,
                "amount": str(amount),
            },
        )

    async def verify_transaction(
        self,
        tx_hash: str,
        expected_amount: Optional[int] = None,
        expected_recipient: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"txHash": tx_hash}
        if expected_amount is not None:
            body["expectedAmount"] = str(expected_amount)
        if expected_recipient:
            body["expectedRecipient"] = expected_recipient
        return await self._request("POST", "/verify", json=body)

    async def health_check(self) -> bool:
        """Check the service readiness endpoint."""
        client = await self._ensure_client()
        try:
            response = await client.get("/health/ready")
        except httpx.RequestError:
            return False
        return response.status_code == 200

    async def close(self) -> None:
        """Close HTTP client. Safe to call multiple times."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
