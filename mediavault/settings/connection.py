"""Redis connection and pooling for the settings store.

This module provides the RedisConnection class, which owns the connection
pool behind SettingsStore and degrades to "no client" instead of raising.
"""

from typing import Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class RedisConnection:
    """
    Redis connection manager with connection pooling.

    Attributes:
        pool: Redis connection pool
        client: Redis client instance, None when the pool could not be built
    """

    def __init__(self, redis_url: str = DEFAULT_REDIS_URL) -> None:
        self.redis_url = redis_url
        self.pool: Optional[ConnectionPool] = None
        self.client: Optional[redis.Redis] = None
        self._initialize_pool()

    def _initialize_pool(self) -> None:
        try:
            self.pool = ConnectionPool.from_url(
                self.redis_url,
                max_connections=10,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            logger.info(
                "redis_pool_initialized",
                max_connections=10,
                redis_url=self.redis_url.split("@")[-1],  # Don't log credentials
            )

        except Exception as e:
            logger.error(
                "redis_pool_initialization_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            # Fail open: settings are kept in memory only
            self.client = None
            self.pool = None

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if Redis is healthy, False otherwise
        """
        if not self.client:
            logger.warning("redis_ping_failed", reason="client_not_initialized")
            return False

        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("redis_ping_failed", error=str(e), error_type=type(e).__name__)
            return False

    async def close(self) -> None:
        """Close the client and disconnect the pool."""
        try:
            if self.client:
                await self.client.aclose()
                logger.info("redis_client_closed")

            if self.pool:
                await self.pool.disconnect()
                logger.info("redis_pool_disconnected")

        except Exception as e:
            logger.error("redis_close_error", error=str(e), error_type=type(e).__name__)

    def is_available(self) -> bool:
        """True if a client was initialized (not whether Redis is reachable)."""
        return self.client is not None
