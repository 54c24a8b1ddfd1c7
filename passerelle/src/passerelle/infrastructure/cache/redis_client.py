"""Redis client wrapper."""

from typing import Optional

import redis.asyncio as aioredis

from passerelle.infrastructure.monitoring import get_logger

logger = get_logger(__name__)


class RedisClient:
    """
    Async Redis connection holder.

    Used as the shared counter store for rate limiting across
    service instances.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
    ):
        """
        Initialize Redis client configuration.

        Args:
            host: Redis server host
            port: Redis server port
            db: Redis database number (0-15)
            password: Redis password (None if no auth)
        """
        self.host = host
        self.port = port
        self.db = db
        self.password = password if password else None
        self._client: Optional[aioredis.Redis] = None

    @property
    def client(self) -> aioredis.Redis:
        """Connected redis.asyncio client."""
        if self._client is None:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Establish connection to Redis server."""
        if self._client is not None:
            return

        self._client = aioredis.from_url(
            f"redis://{self.host}:{self.port}/{self.db}",
            password=self.password,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
        )
        logger.info(f"Redis client configured for {self.host}:{self.port}")

    async def disconnect(self) -> None:
        """Close connection to Redis server."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except (aioredis.RedisError, OSError):
            return False
