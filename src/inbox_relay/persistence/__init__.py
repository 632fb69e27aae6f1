"""
Persistence layer.

- redis_client.py: Redis connection pooling
- queue_store.py: ordered QueueItem store with advisory leases
- config_store.py: persisted RuntimeConfig and cached label inventory
- audit_log.py: append-only audit log with retention

Each store has a Redis implementation and an in-process one; STORE_BACKEND
selects which set build_stores() returns.
"""

from dataclasses import dataclass

from inbox_relay.config import Settings
from inbox_relay.persistence.audit_log import AuditLog, MemoryAuditLog, RedisAuditLog
from inbox_relay.persistence.config_store import (
    ConfigStore,
    MemoryConfigStore,
    RedisConfigStore,
)
from inbox_relay.persistence.queue_store import (
    MemoryQueueStore,
    QueueStore,
    RedisQueueStore,
)
from inbox_relay.persistence.redis_client import RedisClient, get_redis_client


@dataclass
class Stores:
    """The three stores every entry point works against."""

    queue: QueueStore
    config: ConfigStore
    audit: AuditLog


def build_stores(settings: Settings) -> Stores:
    """
    Build stores for the configured backend.

    Memory stores are process-local; callers that need them shared across
    requests must cache the returned object.
    """
    if settings.STORE_BACKEND == "memory":
        return Stores(
            queue=MemoryQueueStore(),
            config=MemoryConfigStore(settings),
            audit=MemoryAuditLog(settings.LOG_RETENTION),
        )

    redis_client = get_redis_client(settings)
    return Stores(
        queue=RedisQueueStore(redis_client),
        config=RedisConfigStore(redis_client, settings),
        audit=RedisAuditLog(redis_client, settings.LOG_RETENTION),
    )


__all__ = [
    "RedisClient",
    "get_redis_client",
    "QueueStore",
    "RedisQueueStore",
    "MemoryQueueStore",
    "ConfigStore",
    "RedisConfigStore",
    "MemoryConfigStore",
    "AuditLog",
    "RedisAuditLog",
    "MemoryAuditLog",
    "Stores",
    "build_stores",
]
