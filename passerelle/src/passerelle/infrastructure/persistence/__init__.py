"""Persistence infrastructure."""

from passerelle.infrastructure.persistence.database import Database
from passerelle.infrastructure.persistence.models import Base, TransferRecordModel

__all__ = ["Base", "Database", "TransferRecordModel"]
