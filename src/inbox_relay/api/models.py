"""API request and response models for the operational endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from inbox_relay.models.queue_models import LogEntry, QueueItem, utcnow


class RegisterRequest(BaseModel):
    """Optional endpoint overrides persisted before registering."""

    channelUrl: Optional[str] = Field(default=None, description="Chat channel incoming-webhook URL")
    callbackUrl: Optional[str] = Field(default=None, description="This instance's public webhook URL")
    hubUrl: Optional[str] = Field(default=None, description="Hub URL for direct registration")


class QueueResponse(BaseModel):
    """Snapshot of the queue."""

    items: list[QueueItem]
    counts: dict[str, int] = Field(
        description="Item count per status",
        examples=[{"Queued": 3, "Posted": 1, "Error": 0}],
    )


class AuditResponse(BaseModel):
    entries: list[LogEntry]


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "unhealthy"],
    )
    version: str
    instance: str
    services: dict[str, str] = Field(
        description="Service-specific health status",
        examples=[{"redis": "ok", "channel": "configured"}],
    )
    timestamp: datetime = Field(default_factory=utcnow)
