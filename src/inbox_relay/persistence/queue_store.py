"""
Ordered, persistent collection of QueueItem records.

Storage Strategy (Redis):
- Records: Hash "relay:items", field = item_id, value = QueueItem JSON
- Order: Sorted set "relay:queue:order" scored by "relay:queue:seq" (INCR)
- Leases: redis-py Lock under "relay:lease:{name}" with expiry

Operations are read-modify-write against the backing store. Duplicate inserts
are rejected atomically (HSETNX) and saves never resurrect a deleted record
(Lua check-and-set); everything else relies on the dispatch lease
and on idempotent handling of already-deleted items.
"""

import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

import structlog
from redis import Redis
from redis.exceptions import LockError

from inbox_relay.models.enums import QueueStatus
from inbox_relay.models.queue_models import QueueItem, utcnow

logger = structlog.get_logger(__name__)


class QueueStore(ABC):
    """
    Abstract queue store.

    Ordering is insertion order. Implementations must keep item_id unique
    among stored records.
    """

    @abstractmethod
    def enqueue_if_absent(self, item: QueueItem) -> bool:
        """Insert unless item_id is already present. Returns whether inserted."""

    @abstractmethod
    def get(self, item_id: str) -> Optional[QueueItem]:
        """Return the stored item or None."""

    @abstractmethod
    def all(self) -> list[QueueItem]:
        """All items in insertion order."""

    @abstractmethod
    def save(self, item: QueueItem) -> bool:
        """Overwrite an existing record. Returns False if the item is gone."""

    @abstractmethod
    def delete(self, item_id: str) -> bool:
        """Remove an item. Returns whether something was deleted."""

    @abstractmethod
    def lease(self, name: str, ttl_seconds: int):
        """Advisory lock with expiry, as a context manager yielding True if held."""

    def find_by_status(self, status: QueueStatus) -> list[QueueItem]:
        """Items with the given status, oldest first."""
        return [item for item in self.all() if item.status == status]

    def first_by_status(self, status: QueueStatus) -> Optional[QueueItem]:
        matches = self.find_by_status(status)
        return matches[0] if matches else None

    def update_status(
        self,
        item_id: str,
        status: QueueStatus,
        timestamp: Optional[datetime] = None,
    ) -> Optional[QueueItem]:
        """
        Change an item's status. No-op if the item is absent.

        Posted records posted_at (timestamp or now); any other status clears it.
        """
        item = self.get(item_id)
        if item is None:
            return None
        item.status = status
        item.posted_at = (timestamp or utcnow()) if status == QueueStatus.POSTED else None
        if not self.save(item):
            return None
        return item

    def set_labels(self, item_id: str, text: str) -> Optional[QueueItem]:
        item = self.get(item_id)
        if item is None:
            return None
        item.labels_to_apply = text
        if not self.save(item):
            return None
        return item

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in QueueStatus}
        for item in self.all():
            counts[item.status.value] += 1
        return counts


class RedisQueueStore(QueueStore):
    """Queue store backed by Redis."""

    ITEMS_KEY = "relay:items"
    ORDER_KEY = "relay:queue:order"
    SEQ_KEY = "relay:queue:seq"
    LEASE_PREFIX = "relay:lease:"

    # HSET only if the record still exists; a concurrent delete must win
    SAVE_IF_PRESENT = """
if redis.call("HEXISTS", KEYS[1], ARGV[1]) == 1 then
    redis.call("HSET", KEYS[1], ARGV[1], ARGV[2])
    return 1
end
return 0
"""

    def __init__(self, redis_client: Redis):
        self.redis = redis_client
        self._save_if_present = redis_client.register_script(self.SAVE_IF_PRESENT)

    def enqueue_if_absent(self, item: QueueItem) -> bool:
        inserted = self.redis.hsetnx(self.ITEMS_KEY, item.item_id, item.model_dump_json())
        if not inserted:
            logger.debug("Item already queued", item_id=item.item_id)
            return False
        seq = self.redis.incr(self.SEQ_KEY)
        self.redis.zadd(self.ORDER_KEY, {item.item_id: seq})
        logger.info("Item enqueued", item_id=item.item_id, seq=seq)
        return True

    def get(self, item_id: str) -> Optional[QueueItem]:
        raw = self.redis.hget(self.ITEMS_KEY, item_id)
        if raw is None:
            return None
        return QueueItem.model_validate_json(raw)

    def all(self) -> list[QueueItem]:
        item_ids = self.redis.zrange(self.ORDER_KEY, 0, -1)
        if not item_ids:
            return []
        records = self.redis.hmget(self.ITEMS_KEY, item_ids)
        # Order entries whose record vanished mid-read are skipped
        return [
            QueueItem.model_validate_json(raw)
            for raw in records
            if raw is not None
        ]

    def save(self, item: QueueItem) -> bool:
        saved = self._save_if_present(
            keys=[self.ITEMS_KEY], args=[item.item_id, item.model_dump_json()]
        )
        return bool(saved)

    def delete(self, item_id: str) -> bool:
        deleted = self.redis.hdel(self.ITEMS_KEY, item_id)
        self.redis.zrem(self.ORDER_KEY, item_id)
        logger.info(
            "Deleted item" if deleted else "Item not found for deletion",
            item_id=item_id,
        )
        return bool(deleted)

    @contextmanager
    def lease(self, name: str, ttl_seconds: int) -> Iterator[bool]:
        lock = self.redis.lock(f"{self.LEASE_PREFIX}{name}", timeout=ttl_seconds)
        acquired = lock.acquire(blocking=False)
        if not acquired:
            logger.info("Lease held elsewhere", lease=name)
        try:
            yield bool(acquired)
        finally:
            if acquired:
                try:
                    lock.release()
                except LockError:
                    logger.warning("Lease expired before release", lease=name)


class MemoryQueueStore(QueueStore):
    """
    In-process queue store.

    Used for single-process local runs and tests. Dicts keep insertion order,
    which is the queue order.
    """

    def __init__(self):
        self._items: dict[str, str] = {}
        self._leases: dict[str, float] = {}
        self._lock = threading.RLock()

    def enqueue_if_absent(self, item: QueueItem) -> bool:
        with self._lock:
            if item.item_id in self._items:
                return False
            self._items[item.item_id] = item.model_dump_json()
        logger.info("Item enqueued", item_id=item.item_id)
        return True

    def get(self, item_id: str) -> Optional[QueueItem]:
        with self._lock:
            raw = self._items.get(item_id)
        return QueueItem.model_validate_json(raw) if raw is not None else None

    def all(self) -> list[QueueItem]:
        with self._lock:
            records = list(self._items.values())
        return [QueueItem.model_validate_json(raw) for raw in records]

    def save(self, item: QueueItem) -> bool:
        with self._lock:
            if item.item_id not in self._items:
                return False
            self._items[item.item_id] = item.model_dump_json()
        return True

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    @contextmanager
    def lease(self, name: str, ttl_seconds: int) -> Iterator[bool]:
        now = time.monotonic()
        with self._lock:
            expires = self._leases.get(name)
            acquired = expires is None or expires <= now
            if acquired:
                self._leases[name] = now + ttl_seconds
        try:
            yield acquired
        finally:
            if acquired:
                with self._lock:
                    self._leases.pop(name, None)
