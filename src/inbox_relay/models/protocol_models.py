"""
Wire-level models for the chat channel and the inbound webhook, plus the
structured results returned by the core entry points.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from inbox_relay.models.enums import WebhookAction
from inbox_relay.models.queue_models import QueueItem


class ChannelMessage(BaseModel):
    """A decoded channel message: one header line plus free-text body."""

    instance_tag: str = Field(min_length=1)
    message_type: str = Field(description="MessageType value or TEST_* probe")
    item_id: Optional[str] = None
    status: Optional[str] = None
    body: str = ""


class WebhookPayload(BaseModel):
    """Raw inbound webhook JSON. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    action: Optional[str] = None
    emailId: Optional[str] = None
    labels: Optional[str | list[str]] = None
    testId: Optional[str] = None


class InboundDecision(BaseModel):
    """A recognized webhook payload."""

    action: WebhookAction
    item_id: Optional[str] = None
    labels: str = ""
    test_id: Optional[str] = None
    legacy: bool = False


@dataclass
class DispatchResult:
    """Outcome of one outbound channel post. Never raised, always returned."""

    delivered: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class ResolutionResult:
    """Outcome of resolving one item against its label decision."""

    item_id: str
    found: bool
    applied: list[str] = field(default_factory=list)
    not_found_labels: list[str] = field(default_factory=list)
    confirmed: bool = False
    error: Optional[str] = None
    next_item: Optional[QueueItem] = None

    @property
    def success(self) -> bool:
        return self.found and self.error is None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "emailId": self.item_id,
            "found": self.found,
            "applied": self.applied,
            "notFoundLabels": self.not_found_labels,
            "confirmed": self.confirmed,
            "error": self.error,
            "nextItem": self.next_item.item_id if self.next_item else None,
        }


@dataclass
class TickResult:
    """Outcome of one scheduler tick."""

    recovered: list[str] = field(default_factory=list)
    enqueued: int = 0
    posted: Optional[str] = None
    delivered: Optional[bool] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.error is None,
            "recovered": self.recovered,
            "enqueued": self.enqueued,
            "posted": self.posted,
            "delivered": self.delivered,
            "error": self.error,
        }


@dataclass
class RegistrationResult:
    """Outcome of the registration handshake."""

    channel: DispatchResult
    hub: Optional[DispatchResult] = None
    registered: bool = False

    def to_dict(self) -> dict:
        return {
            "success": self.registered,
            "channelDelivered": self.channel.delivered,
            "hubDelivered": self.hub.delivered if self.hub else None,
            "error": self.channel.error if not self.registered else None,
        }
