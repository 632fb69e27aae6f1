"""
Append-only audit log with a keep-most-recent-N retention policy.

Redis: List "relay:audit", LPUSH (newest first) then LTRIM to the retention.
"""

import threading
from abc import ABC, abstractmethod
from collections import deque

import structlog
from redis import Redis

from inbox_relay.models.queue_models import SYSTEM_ITEM_ID, LogEntry

logger = structlog.get_logger(__name__)


class AuditLog(ABC):
    """Abstract audit log."""

    def __init__(self, retention: int = 500):
        self.retention = retention

    @abstractmethod
    def append(self, entry: LogEntry) -> None:
        """Record one entry and prune to the retention limit."""

    @abstractmethod
    def recent(self, limit: int = 100) -> list[LogEntry]:
        """Newest entries first."""

    def record(
        self,
        action: str,
        item_id: str = SYSTEM_ITEM_ID,
        details: str = "",
        result: str = "",
        notes: str = "",
    ) -> None:
        """
        Convenience wrapper around append().

        Audit failures are logged and swallowed: losing an audit line must
        never abort the operation being audited.
        """
        entry = LogEntry(
            item_id=item_id,
            action=action,
            details=details,
            result=result,
            notes=notes,
        )
        try:
            self.append(entry)
        except Exception as e:
            logger.error("Failed to write audit entry", action=action, item_id=item_id, error=str(e))


class RedisAuditLog(AuditLog):
    AUDIT_KEY = "relay:audit"

    def __init__(self, redis_client: Redis, retention: int = 500):
        super().__init__(retention)
        self.redis = redis_client

    def append(self, entry: LogEntry) -> None:
        self.redis.lpush(self.AUDIT_KEY, entry.model_dump_json())
        self.redis.ltrim(self.AUDIT_KEY, 0, self.retention - 1)

    def recent(self, limit: int = 100) -> list[LogEntry]:
        raw_entries = self.redis.lrange(self.AUDIT_KEY, 0, limit - 1)
        return [LogEntry.model_validate_json(raw) for raw in raw_entries]


class MemoryAuditLog(AuditLog):
    def __init__(self, retention: int = 500):
        super().__init__(retention)
        self._entries: deque[LogEntry] = deque(maxlen=retention)
        self._lock = threading.Lock()

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            if self._entries.maxlen != self.retention:
                # Newest entries sit on the left
                self._entries = deque(
                    list(self._entries)[: max(self.retention - 1, 0)], maxlen=self.retention
                )
            self._entries.appendleft(entry)

    def recent(self, limit: int = 100) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)[:limit]
