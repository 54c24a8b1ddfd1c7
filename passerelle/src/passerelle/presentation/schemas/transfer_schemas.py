"""
API schemas for transfer operations.

Request and response models for transfer endpoints. JSON fields are
camelCase on the wire.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from passerelle.domain.entities.transfer_record import (
    MAX_AMOUNT_DIGITS,
    MAX_CHAIN_FIELD_LENGTH,
    TransferRecord,
    TransferStats,
    TransferStatus,
)
from passerelle.domain.services.i_chain_reader import TransactionVerification

TX_HASH_REGEX = r"^0x[a-fA-F0-9]{64}$"
AMOUNT_REGEX = r"^[0-9]+$"


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ================================================================
# Request Schemas
# ================================================================


class CreateTransferRequest(CamelModel):
    """Request schema for recording a new transfer."""

    user_address: str = Field(..., description="Destination-side wallet")
    source_chain: str = Field(
        ..., max_length=MAX_CHAIN_FIELD_LENGTH, description="Source chain identifier"
    )
    source_token: str = Field(
        ...,
        max_length=MAX_CHAIN_FIELD_LENGTH,
        description="Source token symbol or address",
    )
    source_amount: str = Field(
        ...,
        pattern=AMOUNT_REGEX,
        max_length=MAX_AMOUNT_DIGITS,
        description="Amount sent (atomic units)",
    )
    expected_destination_amount: str = Field(
        ...,
        pattern=AMOUNT_REGEX,
        max_length=MAX_AMOUNT_DIGITS,
        description="Quoted amount on arrival (atomic units)",
    )


class UpdateStatusRequest(CamelModel):
    """Request schema for a status update."""

    status: TransferStatus
    tx_hash: Optional[str] = Field(default=None, pattern=TX_HASH_REGEX)
    error_message: Optional[str] = Field(default=None, max_length=1000)


class WebhookRequest(CamelModel):
    """Request schema for bridge-success and l1-success callbacks."""

    transfer_id: UUID
    tx_hash: str = Field(..., pattern=TX_HASH_REGEX)
    amount: str = Field(
        ...,
        pattern=AMOUNT_REGEX,
        max_length=MAX_AMOUNT_DIGITS,
        description="Atomic units",
    )


class VerifyRequest(CamelModel):
    """Request schema for ad-hoc transaction verification."""

    tx_hash: str = Field(..., pattern=TX_HASH_REGEX)
    expected_amount: Optional[str] = Field(default=None, pattern=AMOUNT_REGEX)
    expected_recipient: Optional[str] = Field(
        default=None, pattern=r"^0x[a-fA-F0-9]{40}$"
    )


# ================================================================
# Response Schemas
# ================================================================


class TransferResponse(CamelModel):
    """Response schema for a transfer record."""

    id: UUID
    user_address: str
    source_chain: str
    source_token: str
    source_amount: str
    destination_amount: str
    bridge_tx_hash: Optional[str] = None
    deposit_tx_hash: Optional[str] = None
    status: TransferStatus
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, record: TransferRecord) -> "TransferResponse":
        return cls(
            id=record.id,
            user_address=record.user_address,
            source_chain=record.source_chain,
            source_token=record.source_token,
            source_amount=record.source_amount,
            destination_amount=record.destination_amount,
            bridge_tx_hash=record.bridge_tx_hash,
            deposit_tx_hash=record.deposit_tx_hash,
            status=record.status,
            error_message=record.error_message,
            created_at=record.created_at,
            updated_at=record.updated_at,
            completed_at=record.completed_at,
        )


class UserTransfersResponse(CamelModel):
    """Response schema for a page of a user's transfers."""

    transfers: List[TransferResponse]
    total: int
    page: int
    limit: int


class StatsResponse(CamelModel):
    """Response schema for aggregate transfer statistics."""

    total: int
    counts_by_status: Dict[str, int]
    total_completed_volume: str

    @classmethod
    def from_stats(cls, stats: TransferStats) -> "StatsResponse":
        return cls(
            total=stats.total,
            counts_by_status=dict(stats.counts_by_status),
            total_completed_volume=str(stats.total_completed_volume),
        )


class VerificationResponse(CamelModel):
    """Response schema for a transaction verification."""

    tx_hash: str
    verified: bool
    confirmed: bool
    success: bool
    block_number: Optional[int] = None
    token: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    amount: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def from_result(
        cls, verification: TransactionVerification
    ) -> "VerificationResponse":
        return cls(**verification.to_dict())
