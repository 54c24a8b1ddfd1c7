"""
SQLAlchemy models for Passerelle persistence.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from passerelle.domain.entities.transfer_record import (
    MAX_AMOUNT_DIGITS,
    MAX_CHAIN_FIELD_LENGTH,
    utc_now,
)


class Base(DeclarativeBase):
    """Base class for all models."""


class TransferRecordModel(Base):
    """Transfer record database model."""

    __tablename__ = "transfer_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_address: Mapped[str] = mapped_column(String(42), index=True, nullable=False)
    source_chain: Mapped[str] = mapped_column(
        String(MAX_CHAIN_FIELD_LENGTH), nullable=False
    )
    source_token: Mapped[str] = mapped_column(
        String(MAX_CHAIN_FIELD_LENGTH), nullable=False
    )
    source_amount: Mapped[str] = mapped_column(
        String(MAX_AMOUNT_DIGITS), nullable=False
    )
    destination_amount: Mapped[str] = mapped_column(
        String(MAX_AMOUNT_DIGITS), nullable=False
    )
    bridge_tx_hash: Mapped[str | None] = mapped_column(
        String(66), unique=True, index=True
    )
    deposit_tx_hash: Mapped[str | None] = mapped_column(
        String(66), unique=True, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_transfer_records_status_created_at", "status", "created_at"),
    )
