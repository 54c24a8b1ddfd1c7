"""Repository interfaces."""

from passerelle.domain.repositories.i_transfer_record_repository import (
    MAX_PAGE_SIZE,
    ITransferRecordRepository,
)

__all__ = ["ITransferRecordRepository", "MAX_PAGE_SIZE"]
