"""
Test fixtures and configuration.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from helpers.fakes import FakeChainReader
from passerelle.config.settings import Settings
from passerelle.infrastructure.persistence.database import Database
from passerelle.infrastructure.persistence.repositories import (
    InMemoryTransferRecordRepository,
    TransferRecordRepository,
)


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an isolated app: no Redis, no chain watcher."""
    return Settings(
        ENV="test",
        LOG_LEVEL="WARNING",
        DATABASE_URL=None,
        REDIS_ENABLED=False,
        CHAIN_WATCHER_ENABLED=False,
        RATE_LIMIT_ENABLED=True,
        USDC_ADDRESS="0x" + "11" * 20,
    )


@pytest.fixture
def repository() -> InMemoryTransferRecordRepository:
    return InMemoryTransferRecordRepository()


@pytest.fixture
def chain() -> FakeChainReader:
    return FakeChainReader()


@pytest_asyncio.fixture
async def sqlite_database(tmp_path) -> AsyncGenerator[Database, None]:
    """File-backed SQLite database with fresh tables."""
    db = Database(database_url=f"sqlite+aiosqlite:///{tmp_path / 'transfers.db'}")
    await db.connect()
    await db.create_tables()

    yield db

    await db.drop_tables()
    await db.disconnect()


@pytest_asyncio.fixture
async def sql_repository(sqlite_database: Database) -> TransferRecordRepository:
    return TransferRecordRepository(sqlite_database)
