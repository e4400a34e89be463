"""Pooled asyncio Redis client backing the notification store."""

from urllib.parse import urlparse

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from health_analytics.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Owns one connection pool; created and closed by the process entrypoint."""

    def __init__(self, redis_url: str, max_connections: int = 20):
        self.redis_url = redis_url
        self.max_connections = max_connections
        self.pool: ConnectionPool | None = None
        self.client: redis.Redis | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", host=urlparse(self.redis_url).hostname)

            self.pool = ConnectionPool.from_url(
                self.redis_url,
                max_connections=self.max_connections,
                retry_on_timeout=True,
                socket_connect_timeout=10,
                socket_timeout=10,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            # Test connection
            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Redis client initialized successfully", max_connections=self.max_connections)

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self) -> None:
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def ping(self) -> bool:
        """Test Redis connection"""
        if not self._initialized or self.client is None:
            return False
        try:
            result = await self.client.ping()
            return bool(result)
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False
