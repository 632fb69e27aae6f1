"""
Persisted runtime configuration and cached label inventory.

Storage Strategy (Redis):
- Config: Hash "relay:config", field = key, value = JSON-encoded value
- Label inventory: List "relay:labels"

Stored values override the defaults derived from Settings. Nothing here is
cached in-process: callers load() once per invocation.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import structlog
from redis import Redis

from inbox_relay.config import Settings
from inbox_relay.models.queue_models import RuntimeConfig

logger = structlog.get_logger(__name__)


def default_runtime_config(settings: Settings) -> dict[str, Any]:
    """Seed values for every RuntimeConfig key."""
    return {
        "instance_name": settings.INSTANCE_NAME,
        "account_email": settings.ACCOUNT_EMAIL,
        "channel_url": settings.CHANNEL_URL,
        "callback_url": settings.CALLBACK_URL,
        "hub_url": settings.HUB_URL,
        "batch_size": settings.BATCH_SIZE,
        "rate_limit_ms": settings.RATE_LIMIT_MS,
        "inflight_timeout_minutes": settings.INFLIGHT_TIMEOUT_MINUTES,
        "max_item_retries": settings.MAX_ITEM_RETRIES,
        "inbound_mode": settings.INBOUND_MODE,
        "log_retention": settings.LOG_RETENTION,
    }


class ConfigStore(ABC):
    """Abstract runtime configuration store."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @abstractmethod
    def _read(self) -> dict[str, Any]:
        """Return persisted overrides."""

    @abstractmethod
    def _write(self, values: dict[str, Any]) -> None:
        """Persist the given overrides."""

    @abstractmethod
    def save_label_inventory(self, labels: list[str]) -> None:
        """Replace the cached label inventory."""

    @abstractmethod
    def get_label_inventory(self) -> list[str]:
        """Return the cached label inventory (may be empty)."""

    def load(self) -> RuntimeConfig:
        values = default_runtime_config(self.settings)
        values.update(self._read())
        return RuntimeConfig.model_validate(values)

    def update(self, **changes: Any) -> RuntimeConfig:
        """Validate and persist changed keys. Unknown keys raise ValueError."""
        unknown = set(changes) - set(RuntimeConfig.model_fields)
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        current = self.load().model_dump()
        current.update(changes)
        config = RuntimeConfig.model_validate(current)

        dumped = config.model_dump(mode="json")
        self._write({key: dumped[key] for key in changes})
        logger.info("Runtime config updated", keys=sorted(changes))
        return config


class RedisConfigStore(ConfigStore):
    """Config store backed by a Redis hash."""

    CONFIG_KEY = "relay:config"
    LABELS_KEY = "relay:labels"

    def __init__(self, redis_client: Redis, settings: Settings):
        super().__init__(settings)
        self.redis = redis_client

    def _read(self) -> dict[str, Any]:
        raw = self.redis.hgetall(self.CONFIG_KEY) or {}
        values = {}
        for key, value in raw.items():
            try:
                values[key] = json.loads(value)
            except ValueError:
                logger.warning("Ignoring undecodable config value", key=key)
        return values

    def _write(self, values: dict[str, Any]) -> None:
        if values:
            self.redis.hset(
                self.CONFIG_KEY,
                mapping={key: json.dumps(value) for key, value in values.items()},
            )

    def save_label_inventory(self, labels: list[str]) -> None:
        pipe = self.redis.pipeline()
        pipe.delete(self.LABELS_KEY)
        if labels:
            pipe.rpush(self.LABELS_KEY, *labels)
        pipe.execute()

    def get_label_inventory(self) -> list[str]:
        return list(self.redis.lrange(self.LABELS_KEY, 0, -1))


class MemoryConfigStore(ConfigStore):
    """In-process config store for local runs and tests."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._values: dict[str, Any] = {}
        self._labels: list[str] = []

    def _read(self) -> dict[str, Any]:
        return dict(self._values)

    def _write(self, values: dict[str, Any]) -> None:
        self._values.update(values)

    def save_label_inventory(self, labels: list[str]) -> None:
        self._labels = list(labels)

    def get_label_inventory(self) -> list[str]:
        return list(self._labels)
