"""Transfer record store backends."""

from passerelle.infrastructure.persistence.repositories.in_memory_transfer_record_repository import (  # noqa: E501
    InMemoryTransferRecordRepository,
)
from passerelle.infrastructure.persistence.repositories.transfer_record_repository import (  # noqa: E501
    TransferRecordRepository,
)

__all__ = ["InMemoryTransferRecordRepository", "TransferRecordRepository"]
