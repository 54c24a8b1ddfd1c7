"""
List User Transfers use case.
Paginated history of one account's transfers, newest first.
"""

from dataclasses import dataclass
from typing import List

from passerelle.domain.entities.transfer_record import TransferRecord
from passerelle.domain.exceptions import ValidationError
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
    clamp_page,
)
from passerelle.domain.value_objects.wallet_address import WalletAddress


@dataclass
class UserTransfersResult:
    """
    One page of a user's transfers.

    Attributes:
        transfers: Records on this page
        total: Records for the user across all pages
        page: 1-based page number actually served
        limit: Page size actually served (capped)
    """

    transfers: List[TransferRecord]
    total: int
    page: int
    limit: int


class ListUserTransfers:
    """List transfers for an address."""

    def __init__(self, transfer_repository: ITransferRecordRepository):
        self.transfer_repository = transfer_repository

    async def execute(
        self,
        user_address: str,
        page: int = 1,
        limit: int = 20,
    ) -> UserTransfersResult:
        """
        Execute listing.

        Raises:
            ValidationError: If address is not an EVM address
        """
        if not WalletAddress.is_valid(user_address):
            raise ValidationError("address", "must be a 0x-prefixed address")

        page, limit = clamp_page(page, limit)
        transfers, total = await self.transfer_repository.list_by_user(
            user_address, page=page, page_size=limit
        )
        return UserTransfersResult(
            transfers=transfers,
            total=total,
            page=page,
            limit=limit,
        )
