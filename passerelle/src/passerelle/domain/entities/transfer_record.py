"""
TransferRecord entity - Domain model for a cross-chain transfer.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional
from uuid import UUID, uuid4

from passerelle.domain.exceptions.base import ValidationError
from passerelle.domain.value_objects.wallet_address import WalletAddress


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class TransferStatus(str, Enum):
    """Persisted transfer states."""

    PENDING = "PENDING"
    BRIDGING = "BRIDGING"
    DEPOSITING = "DEPOSITING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """COMPLETED and FAILED records never move again."""
        return self in (TransferStatus.COMPLETED, TransferStatus.FAILED)


# Forward-only predecessors for each target status
FORWARD_TRANSITIONS: Dict[TransferStatus, frozenset] = {
    TransferStatus.PENDING: frozenset(),
    TransferStatus.BRIDGING: frozenset({TransferStatus.PENDING}),
    TransferStatus.DEPOSITING: frozenset(
        {TransferStatus.PENDING, TransferStatus.BRIDGING}
    ),
    TransferStatus.COMPLETED: frozenset(
        {
            TransferStatus.PENDING,
            TransferStatus.BRIDGING,
            TransferStatus.DEPOSITING,
        }
    ),
    TransferStatus.FAILED: frozenset(
        {
            TransferStatus.PENDING,
            TransferStatus.BRIDGING,
            TransferStatus.DEPOSITING,
        }
    ),
}

STALE_CANDIDATE_STATUSES = (TransferStatus.PENDING, TransferStatus.BRIDGING)

# On-chain proof of arrival overrides a timeout failure
CHAIN_CONFIRMED_FROM = frozenset(
    {
        TransferStatus.PENDING,
        TransferStatus.BRIDGING,
        TransferStatus.DEPOSITING,
        TransferStatus.FAILED,
    }
)

STALE_TIMEOUT_MESSAGE = "Transfer timed out"

# Column widths of the transfer_records table
MAX_CHAIN_FIELD_LENGTH = 64
# uint256 fits in 78 decimal digits
MAX_AMOUNT_DIGITS = 78

_AMOUNT_PATTERN = re.compile(r"[0-9]+")


def _require_amount(field_name: str, value: str) -> str:
    """Amounts are non-negative integers in atomic units, as strings."""
    if value is None or not isinstance(value, str):
        raise ValidationError(field_name, "is required")
    value = value.strip()
    if not _AMOUNT_PATTERN.fullmatch(value):
        raise ValidationError(field_name, "must be an integer string")
    if len(value) > MAX_AMOUNT_DIGITS:
        raise ValidationError(
            field_name, f"must be at most {MAX_AMOUNT_DIGITS} digits"
        )
    return value


@dataclass(frozen=True)
class NewTransfer:
    """
    Validated input for creating a transfer record.

    Raises ValidationError on malformed fields.
    """

    user_address: str
    source_chain: str
    source_token: str
    source_amount: str
    expected_destination_amount: str

    def __post_init__(self):
        """Validate and normalize input."""
        if not self.user_address:
            raise ValidationError("userAddress", "is required")
        if not WalletAddress.is_valid(self.user_address):
            raise ValidationError("userAddress", "must be a 0x-prefixed address")
        object.__setattr__(self, "user_address", self.user_address.lower())

        for name, label in (
            ("source_chain", "sourceChain"),
            ("source_token", "sourceToken"),
        ):
            value = getattr(self, name)
            if not value or not str(value).strip():
                raise ValidationError(label, "is required")
            if len(str(value)) > MAX_CHAIN_FIELD_LENGTH:
                raise ValidationError(
                    label, f"must be at most {MAX_CHAIN_FIELD_LENGTH} characters"
                )

        object.__setattr__(
            self, "source_amount", _require_amount("sourceAmount", self.source_amount)
        )
        object.__setattr__(
            self,
            "expected_destination_amount",
            _require_amount(
                "expectedDestinationAmount", self.expected_destination_amount
            ),
        )


@dataclass
class TransferRecord:
    """
    TransferRecord entity representing one user transfer.

    Business rules:
    - id and provenance fields are immutable
    - bridge_tx_hash / deposit_tx_hash are set at most once
    - completed_at is set only on the first transition into COMPLETED
    - error_message is only meaningful when FAILED
    """

    user_address: str
    source_chain: str
    source_token: str
    source_amount: str
    destination_amount: str
    id: UUID = field(default_factory=uuid4)
    status: TransferStatus = field(default=TransferStatus.PENDING)
    bridge_tx_hash: Optional[str] = field(default=None)
    deposit_tx_hash: Optional[str] = field(default=None)
    error_message: Optional[str] = field(default=None)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = field(default=None)

    @classmethod
    def from_new(
        cls,
        new_transfer: NewTransfer,
        now: Optional[datetime] = None,
    ) -> "TransferRecord":
        """Build a PENDING record from validated input."""
        now = now or utc_now()
        return cls(
            user_address=new_transfer.user_address,
            source_chain=new_transfer.source_chain,
            source_token=new_transfer.source_token,
            source_amount=new_transfer.source_amount,
            destination_amount=new_transfer.expected_destination_amount,
            created_at=now,
            updated_at=now,
        )

    def owns_hash(self, tx_hash: str) -> bool:
        """Check whether either hash field equals tx_hash."""
        tx_hash = tx_hash.lower()
        return tx_hash in (self.bridge_tx_hash, self.deposit_tx_hash)

    def apply_status(
        self,
        status: TransferStatus,
        tx_hash: Optional[str] = None,
        error_message: Optional[str] = None,
        now: Optional[datetime] = None,
        destination_amount: Optional[str] = None,
    ) -> None:
        """
        Apply a status update in place.

        Stores call this while holding their per-record lock or row lock.
        """
        now = now or utc_now()

        if destination_amount is not None and not self.status.is_terminal:
            self.destination_amount = _require_amount(
                "destinationAmount", destination_amount
            )

        if tx_hash:
            tx_hash = tx_hash.lower()
            if status == TransferStatus.BRIDGING:
                if self.bridge_tx_hash is None:
                    self.bridge_tx_hash = tx_hash
            elif status in (TransferStatus.DEPOSITING, TransferStatus.COMPLETED):
                if self.deposit_tx_hash is None:
                    self.deposit_tx_hash = tx_hash

        self.status = status

        if status == TransferStatus.FAILED:
            self.error_message = error_message or self.error_message
        else:
            self.error_message = None

        if status == TransferStatus.COMPLETED and self.completed_at is None:
            self.completed_at = now

        self.updated_at = now

    def hash_field_for(self, status: TransferStatus) -> Optional[str]:
        """Name of the hash column a status writes to."""
        if status == TransferStatus.BRIDGING:
            return "bridge_tx_hash"
        if status in (TransferStatus.DEPOSITING, TransferStatus.COMPLETED):
            return "deposit_tx_hash"
        return None

    def to_dict(self) -> dict:
        """Convert entity to dictionary representation."""
        return {
            "id": str(self.id),
            "user_address": self.user_address,
            "source_chain": self.source_chain,
            "source_token": self.source_token,
            "source_amount": self.source_amount,
            "destination_amount": self.destination_amount,
            "bridge_tx_hash": self.bridge_tx_hash,
            "deposit_tx_hash": self.deposit_tx_hash,
            "status": self.status.value,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }


@dataclass(frozen=True)
class TransferStats:
    """Aggregate view over all transfer records."""

    total: int
    counts_by_status: Dict[str, int]
    total_completed_volume: int

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "total": self.total,
            "counts_by_status": dict(self.counts_by_status),
            "total_completed_volume": str(self.total_completed_volume),
        }


def empty_status_counts() -> Dict[str, int]:
    """Counts dict with every status present."""
    return {status.value: 0 for status in TransferStatus}


def parse_amount(value: Optional[str]) -> Optional[int]:
    """Parse an atomic-unit amount, returning None when malformed."""
    if value is None:
        return None
    value = value.strip()
    if not _AMOUNT_PATTERN.fullmatch(value):
        return None
    try:
        return int(value)
    except ValueError:
        return None
