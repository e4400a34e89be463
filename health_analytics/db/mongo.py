"""
MongoDB client manager using PyMongo's asyncio client.
Owns the connection pool shared by repositories, consumers and routes.
"""

import time
from typing import Any

from pymongo import ASCENDING, AsyncMongoClient, IndexModel
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from health_analytics.config import Settings
from health_analytics.infrastructure.observability.logging import get_logger
from health_analytics.models.domain.entity_kinds import ENTITY_KINDS

logger = get_logger(__name__)


class MongoClientManager:
    """
    Document store connection lifecycle.

    Created once per process; ``database`` is handed to repositories at
    construction time.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self.client: AsyncMongoClient | None = None
        self._database: AsyncDatabase | None = None
        self._initialized = False
        self._closed = False

    @property
    def database(self) -> AsyncDatabase:
        if not self._initialized or self._database is None:
            raise RuntimeError("Mongo client not initialized. Call initialize() first.")
        return self._database

    async def initialize(self) -> None:
        """Connect, verify with a ping, and make sure summary indexes exist."""
        if self._initialized:
            logger.warning("Mongo client already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed Mongo client")

        client_config = self._settings.get_mongo_client_config()

        try:
            logger.info(
                "Initializing Mongo client",
                database=self._settings.MONGO_DB,
                max_pool_size=client_config["maxPoolSize"],
            )

            self.client = AsyncMongoClient(self._settings.MONGO_URI, **client_config)
            await self.client.admin.command("ping")

            self._database = self.client[self._settings.MONGO_DB]
            self._initialized = True

            await self.ensure_indexes()
            logger.info("Mongo client initialized successfully")

        except PyMongoError as e:
            logger.error("Failed to initialize Mongo client", error=str(e))
            self._initialized = False
            if self.client is not None:
                await self.client.close()
                self.client = None
            raise RuntimeError(f"Mongo initialization failed: {e}") from e

    async def ensure_indexes(self) -> None:
        """Index (user_id, created_at) on every collection for summary windows."""
        for kind in ENTITY_KINDS:
            await self.database[kind.collection].create_indexes(
                [IndexModel([("user_id", ASCENDING), ("created_at", ASCENDING)])]
            )
        logger.debug("Mongo indexes ensured", collections=[kind.collection for kind in ENTITY_KINDS])

    async def close(self) -> None:
        if not self._initialized or self._closed:
            return

        try:
            if self.client is not None:
                await self.client.close()
            logger.info("Mongo client closed")
        except Exception as e:
            logger.error("Error closing Mongo client", error=str(e))
        finally:
            self._initialized = False
            self._closed = True

    async def health_check(self) -> dict[str, Any]:
        if not self._initialized or self.client is None:
            return {"healthy": False, "error": "Mongo client not initialized", "service": "mongodb"}

        start_time = time.time()
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.error("Mongo health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "mongodb",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        return {
            "healthy": True,
            "service": "mongodb",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "database": self._settings.MONGO_DB,
        }
