"""
Data models for the inbox relay.

Includes:
- Enums (QueueStatus, MessageType, WebhookAction, InboundMode, Command)
- Persistent records (QueueItem, RuntimeConfig, LogEntry)
- Protocol models (ChannelMessage, WebhookPayload, InboundDecision)
- Structured results (DispatchResult, ResolutionResult, TickResult, RegistrationResult)
"""

from inbox_relay.models.enums import (
    Command,
    InboundMode,
    MessageType,
    QueueStatus,
    WebhookAction,
)
from inbox_relay.models.protocol_models import (
    ChannelMessage,
    DispatchResult,
    InboundDecision,
    RegistrationResult,
    ResolutionResult,
    TickResult,
    WebhookPayload,
)
from inbox_relay.models.queue_models import (
    SYSTEM_ITEM_ID,
    LogEntry,
    QueueItem,
    RuntimeConfig,
)

__all__ = [
    # Enums
    "Command",
    "InboundMode",
    "MessageType",
    "QueueStatus",
    "WebhookAction",
    # Records
    "SYSTEM_ITEM_ID",
    "LogEntry",
    "QueueItem",
    "RuntimeConfig",
    # Protocol
    "ChannelMessage",
    "WebhookPayload",
    "InboundDecision",
    # Results
    "DispatchResult",
    "ResolutionResult",
    "TickResult",
    "RegistrationResult",
]
