"""
Persistent records: queue items, runtime configuration and audit entries.

These are serialized as JSON into the backing store, so every field must
round-trip through model_dump_json / model_validate_json.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from inbox_relay.models.enums import InboundMode, QueueStatus

SYSTEM_ITEM_ID = "SYSTEM"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueueItem(BaseModel):
    """One unit of work: an inbound email waiting for a label decision."""

    item_id: str = Field(
        min_length=1,
        description="Stable external identifier (mailbox message id)"
    )
    subject: str = Field(default="", description="Email subject")
    source: str = Field(default="", description="Sender address")
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the email was received or first seen"
    )
    context: str = Field(
        default="",
        description="Free-text body supplied to the oracle (bounded)"
    )
    labels_to_apply: str = Field(
        default="",
        description="Raw label decision, empty until one arrives"
    )
    status: QueueStatus = Field(default=QueueStatus.QUEUED)
    posted_at: Optional[datetime] = Field(
        default=None,
        description="Set when the item transitions to Posted"
    )
    retry_count: int = Field(
        default=0,
        ge=0,
        description="Times a stale Posted item was put back in the queue"
    )
    error: Optional[str] = Field(
        default=None,
        description="Reason recorded when the item is moved to Error"
    )

    @property
    def in_flight(self) -> bool:
        return self.status == QueueStatus.POSTED


class RuntimeConfig(BaseModel):
    """
    Flat, mutable key/value configuration persisted in the store.

    Loaded once per invocation and passed explicitly to every entry point.
    """

    instance_name: str = "relay"
    account_email: str = ""
    channel_url: str = ""
    callback_url: str = ""
    hub_url: str = ""
    registered: bool = False
    registered_at: Optional[datetime] = None
    batch_size: int = Field(default=10, ge=1)
    rate_limit_ms: int = Field(default=1000, ge=0)
    inflight_timeout_minutes: int = Field(default=120, ge=0)
    max_item_retries: int = Field(default=3, ge=0)
    inbound_mode: InboundMode = InboundMode.WEBHOOK
    log_retention: int = Field(default=500, ge=1)


class LogEntry(BaseModel):
    """Append-only audit record."""

    timestamp: datetime = Field(default_factory=utcnow)
    item_id: str = SYSTEM_ITEM_ID
    action: str
    details: str = ""
    result: str = ""
    notes: str = ""
