"""
Integration tests for transfer store selection at container startup.
"""

import pytest

from helpers.fakes import FakeChainReader
from passerelle.di.container import DIContainer
from passerelle.infrastructure.persistence.repositories import (
    InMemoryTransferRecordRepository,
    TransferRecordRepository,
)

pytestmark = pytest.mark.integration


class TestStoreSelection:
    async def test_no_database_url_uses_memory(self, test_settings):
        container = DIContainer(test_settings, chain_client=FakeChainReader())

        await container.initialize()
        try:
            assert isinstance(
                container.transfer_repository, InMemoryTransferRecordRepository
            )
            assert not container.uses_sql_store
        finally:
            await container.shutdown()

    async def test_reachable_database_uses_sql(self, test_settings, tmp_path):
        settings = test_settings.model_copy(
            update={"DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"}
        )
        chain = FakeChainReader()
        container = DIContainer(settings, chain_client=chain)

        await container.initialize()
        try:
            assert isinstance(container.transfer_repository, TransferRecordRepository)
            assert container.uses_sql_store
            assert await container.transfer_repository.health_check()
        finally:
            await container.shutdown()

        assert chain.closed

    async def test_unreachable_database_falls_back(self, test_settings, tmp_path):
        missing = tmp_path / "missing" / "store.db"
        settings = test_settings.model_copy(
            update={"DATABASE_URL": f"sqlite+aiosqlite:///{missing}"}
        )
        container = DIContainer(settings, chain_client=FakeChainReader())

        await container.initialize()
        try:
            assert not container.uses_sql_store
        finally:
            await container.shutdown()

    def test_uninitialized_container(self, test_settings):
        container = DIContainer(test_settings)

        with pytest.raises(RuntimeError):
            container.transfer_repository
