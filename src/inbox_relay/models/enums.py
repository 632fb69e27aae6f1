"""
Enumerations for inbox relay data models.

All enums are closed vocabularies, except that decoding tolerates any
TEST_* channel message type.
"""

from enum import Enum


class QueueStatus(str, Enum):
    """
    Lifecycle status of a queue item.

    Queued -> Posted -> (deleted on resolution). Error items are kept for
    manual review. At most one item may be Posted at any time.
    """

    QUEUED = "Queued"
    POSTED = "Posted"
    ERROR = "Error"


class MessageType(str, Enum):
    """Message types carried in the channel header line."""

    REGISTER = "REGISTER"
    EMAIL_READY = "EMAIL_READY"
    CONFIRM_COMPLETE = "CONFIRM_COMPLETE"
    LABEL_RESPONSE = "LABEL_RESPONSE"
    TEST_CHAT_CONNECTION = "TEST_CHAT_CONNECTION"

    @classmethod
    def is_known(cls, value: str) -> bool:
        """True for a declared type or any TEST_* probe."""
        return value in cls._value2member_map_ or value.startswith("TEST_")


class WebhookAction(str, Enum):
    """Actions accepted on the inbound webhook."""

    PING = "ping"
    UPDATE_LABELS = "update_labels"


class InboundMode(str, Enum):
    """How label decisions reach this instance."""

    WEBHOOK = "webhook"
    LISTENER = "listener"


class Command(str, Enum):
    """Commands accepted by the control API."""

    GET_LABELS = "GET_LABELS"
    APPLY_LABELS = "APPLY_LABELS"
    REMOVE_LABELS = "REMOVE_LABELS"
    SYNC_LABELS = "SYNC_LABELS"
