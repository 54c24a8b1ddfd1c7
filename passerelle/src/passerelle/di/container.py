"""
Dependency Injection Container for Passerelle.

Manages all service instances and their dependencies. One container is
built per application and stored on app.state.
"""

from datetime import timedelta
from typing import Optional

from passerelle.application.reconciliation import (
    ChainWatcher,
    DepositReconciler,
    StaleTransferSweeper,
)
from passerelle.application.use_cases import (
    ConfirmBridgeSuccess,
    ConfirmDepositSuccess,
    CreateTransfer,
    GetRecentTransfers,
    GetTransfer,
    GetTransferStats,
    ListUserTransfers,
    UpdateTransferStatus,
    VerifyTransaction,
)
from passerelle.config.settings import Settings
from passerelle.domain.repositories.i_transfer_record_repository import (
    ITransferRecordRepository,
)
from passerelle.domain.services import IChainReader, IDepositEventSource
from passerelle.infrastructure.blockchain import (
    EvmChainClient,
    LogPollingDepositSource,
)
from passerelle.infrastructure.cache import RedisClient
from passerelle.infrastructure.monitoring import get_logger
from passerelle.infrastructure.persistence import Database
from passerelle.infrastructure.persistence.repositories import (
    InMemoryTransferRecordRepository,
    TransferRecordRepository,
)
from passerelle.infrastructure.rate_limiting import RateLimiter
from passerelle.infrastructure.resilience import CircuitBreaker

logger = get_logger(__name__)


class DIContainer:
    """
    Dependency Injection Container.

    Manages singleton instances of infrastructure, background workers
    and use case factories. The transfer store backend is chosen once,
    in initialize().
    """

    def __init__(
        self,
        settings: Settings,
        chain_client: Optional[IChainReader] = None,
        deposit_source: Optional[IDepositEventSource] = None,
        transfer_repository: Optional[ITransferRecordRepository] = None,
    ):
        """
        Initialize container.

        Args:
            settings: Application settings
            chain_client: Chain reader override (tests)
            deposit_source: Deposit event source override (tests)
            transfer_repository: Store override; skips backend selection
        """
        self._settings = settings

        # Infrastructure
        self._database: Optional[Database] = None
        self._redis_client: Optional[RedisClient] = None
        self._rate_limiter: Optional[RateLimiter] = None
        self._chain_client: Optional[IChainReader] = chain_client
        self._deposit_source: Optional[IDepositEventSource] = deposit_source
        self._transfer_repository: Optional[ITransferRecordRepository] = (
            transfer_repository
        )

        # Background workers
        self._reconciler: Optional[DepositReconciler] = None
        self._chain_watcher: Optional[ChainWatcher] = None
        self._stale_sweeper: Optional[StaleTransferSweeper] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    async def initialize(self) -> None:
        """Select the store backend and connect shared services."""
        if self._transfer_repository is None:
            self._transfer_repository = await self._select_repository()

        if self._settings.REDIS_ENABLED:
            await self.redis_client.connect()
            if not await self.redis_client.ping():
                logger.warning(
                    "Redis unreachable; rate limiting falls back to local windows"
                )

    async def shutdown(self) -> None:
        """Stop workers and close connections."""
        if self._chain_watcher:
            await self._chain_watcher.stop()

        if self._stale_sweeper:
            await self._stale_sweeper.stop()

        if self._rate_limiter:
            await self._rate_limiter.stop_cleanup()

        if self._chain_client:
            await self._chain_client.close()

        if self._redis_client:
            await self._redis_client.disconnect()

        if self._database:
            await self._database.disconnect()

    async def _select_repository(self) -> ITransferRecordRepository:
        if not self._settings.DATABASE_URL:
            logger.warning("DATABASE_URL not set; using in-memory transfer store")
            return InMemoryTransferRecordRepository()

        await self.database.connect()
        if await self.database.health_check():
            await self.database.create_tables()
            logger.info("Using SQL transfer store")
            return TransferRecordRepository(self.database)

        logger.warning("Database unreachable; using in-memory transfer store")
        await self.database.disconnect()
        self._database = None
        return InMemoryTransferRecordRepository()

    # ================================================================
    # Infrastructure
    # ================================================================

    @property
    def database(self) -> Database:
        """Get database instance."""
        if self._database is None:
            self._database = Database(
                database_url=self._settings.DATABASE_URL,
                echo=self._settings.DATABASE_ECHO,
            )
        return self._database

    @property
    def uses_sql_store(self) -> bool:
        return isinstance(self._transfer_repository, TransferRecordRepository)

    @property
    def redis_client(self) -> RedisClient:
        """Get Redis client instance."""
        if self._redis_client is None:
            self._redis_client = RedisClient(
                host=self._settings.REDIS_HOST,
                port=self._settings.REDIS_PORT,
                db=self._settings.REDIS_DB,
                password=self._settings.REDIS_PASSWORD,
            )
        return self._redis_client

    @property
    def rate_limiter(self) -> RateLimiter:
        """Get rate limiter (shared store only when Redis is enabled)."""
        if self._rate_limiter is None:
            self._rate_limiter = RateLimiter(
                redis_client=(
                    self.redis_client if self._settings.REDIS_ENABLED else None
                ),
                circuit_breaker=CircuitBreaker(
                    name="redis",
                    failure_threshold=self._settings.CB_FAILURE_THRESHOLD,
                    recovery_timeout=self._settings.CB_TIMEOUT_SECONDS,
                ),
            )
        return self._rate_limiter

    @property
    def transfer_repository(self) -> ITransferRecordRepository:
        """Get the transfer store selected at startup."""
        if self._transfer_repository is None:
            raise RuntimeError("Container not initialized. Call initialize() first.")
        return self._transfer_repository

    @property
    def chain_client(self) -> IChainReader:
        """Get destination chain client."""
        if self._chain_client is None:
            self._chain_client = EvmChainClient(
                rpc_url=self._settings.CHAIN_RPC_URL,
                token_address=self._settings.USDC_ADDRESS,
                bridge_address=self._settings.ASSET_BRIDGE_ADDRESS,
                confirmations=self._settings.CHAIN_CONFIRMATIONS,
                timeout=self._settings.CHAIN_QUERY_TIMEOUT,
                max_retries=self._settings.RETRY_MAX_ATTEMPTS,
                circuit_breaker=CircuitBreaker(
                    name="chain_rpc",
                    failure_threshold=self._settings.CB_FAILURE_THRESHOLD,
                    recovery_timeout=self._settings.CB_TIMEOUT_SECONDS,
                ),
            )
        return self._chain_client

    @property
    def deposit_source(self) -> IDepositEventSource:
        """Get deposit event source polling the bridge address."""
        if self._deposit_source is None:
            self._deposit_source = LogPollingDepositSource(
                chain_client=self.chain_client,
                poll_interval=self._settings.CHAIN_POLL_INTERVAL_SECONDS,
                batch_blocks=self._settings.CHAIN_LOG_BATCH_BLOCKS,
                confirmations=self._settings.CHAIN_CONFIRMATIONS,
            )
        return self._deposit_source

    # ================================================================
    # Background workers
    # ================================================================

    @property
    def reconciler(self) -> DepositReconciler:
        if self._reconciler is None:
            self._reconciler = DepositReconciler(self.transfer_repository)
        return self._reconciler

    @property
    def chain_watcher(self) -> ChainWatcher:
        if self._chain_watcher is None:
            self._chain_watcher = ChainWatcher(self.deposit_source, self.reconciler)
        return self._chain_watcher

    @property
    def stale_sweeper(self) -> StaleTransferSweeper:
        if self._stale_sweeper is None:
            self._stale_sweeper = StaleTransferSweeper(
                self.transfer_repository,
                max_age=timedelta(
                    minutes=self._settings.STALE_TRANSFER_MAX_AGE_MINUTES
                ),
                interval_seconds=self._settings.STALE_SWEEP_INTERVAL_SECONDS,
            )
        return self._stale_sweeper

    def start_background_tasks(self) -> None:
        """Start the sweeper, limiter cleanup and (if enabled) chain watcher."""
        self.stale_sweeper.start()
        self.rate_limiter.start_cleanup(
            self._settings.RATE_LIMIT_CLEANUP_INTERVAL_SECONDS
        )
        if self._settings.CHAIN_WATCHER_ENABLED:
            self.chain_watcher.start()

    # ================================================================
    # Use Cases
    # ================================================================

    def get_create_transfer(self) -> CreateTransfer:
        return CreateTransfer(transfer_repository=self.transfer_repository)

    def get_get_transfer(self) -> GetTransfer:
        return GetTransfer(transfer_repository=self.transfer_repository)

    def get_list_user_transfers(self) -> ListUserTransfers:
        return ListUserTransfers(transfer_repository=self.transfer_repository)

    def get_update_transfer_status(self) -> UpdateTransferStatus:
        return UpdateTransferStatus(transfer_repository=self.transfer_repository)

    def get_confirm_bridge_success(self) -> ConfirmBridgeSuccess:
        return ConfirmBridgeSuccess(
            transfer_repository=self.transfer_repository,
            chain_reader=self.chain_client,
        )

    def get_confirm_deposit_success(self) -> ConfirmDepositSuccess:
        return ConfirmDepositSuccess(
            transfer_repository=self.transfer_repository,
            chain_reader=self.chain_client,
            bridge_address=self._settings.ASSET_BRIDGE_ADDRESS,
        )

    def get_transfer_stats(self) -> GetTransferStats:
        return GetTransferStats(transfer_repository=self.transfer_repository)

    def get_recent_transfers(self) -> GetRecentTransfers:
        return GetRecentTransfers(transfer_repository=self.transfer_repository)

    def get_verify_transaction(self) -> VerifyTransaction:
        return VerifyTransaction(chain_reader=self.chain_client)
