"""
Process-wide Redis connection pool.

Celery tasks and API requests are short-lived; each builds a cheap Redis
wrapper over the one pool owned by RedisClient.
"""

from typing import Optional

import structlog
from redis import ConnectionPool, Redis
from redis.exceptions import RedisError

from inbox_relay.config import Settings

logger = structlog.get_logger(__name__)


class RedisClient:
    """Owner of the shared sync pool."""

    _sync_pool: Optional[ConnectionPool] = None

    @classmethod
    def get_sync_client(cls, settings: Settings) -> Redis:
        """Client bound to the shared pool, creating the pool on first use."""
        if cls._sync_pool is None:
            cls._sync_pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                health_check_interval=30,
                client_name=f"inbox-relay-{settings.INSTANCE_NAME}",
            )
            logger.info(
                "Redis pool created",
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                instance=settings.INSTANCE_NAME,
            )
        return Redis(connection_pool=cls._sync_pool)

    @classmethod
    def close_sync_pool(cls):
        if cls._sync_pool is None:
            return
        cls._sync_pool.disconnect()
        cls._sync_pool = None
        logger.info("Redis pool closed")


def ping(settings: Settings) -> str:
    """
    Round-trip to Redis through the shared pool.

    Returns:
        "ok", or "unreachable (<ErrorType>)"
    """
    try:
        RedisClient.get_sync_client(settings).ping()
    except RedisError as e:
        logger.warning("Redis ping failed", error=str(e))
        return f"unreachable ({type(e).__name__})"
    return "ok"


def get_redis_client(settings: Settings) -> Redis:
    return RedisClient.get_sync_client(settings)
