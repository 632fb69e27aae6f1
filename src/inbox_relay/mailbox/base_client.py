"""
Abstract base client for the mailbox.

The mailbox is both the external item source (new emails to label) and the
label target. This abstraction allows swapping the mail backend without
changing the scheduler or the resolution routine.
"""

from abc import ABC, abstractmethod
from datetime import datetime

import structlog
from pydantic import BaseModel, Field

from inbox_relay.models.queue_models import utcnow

logger = structlog.get_logger(__name__)


class MailMessage(BaseModel):
    """A candidate email as returned by the mailbox."""

    message_id: str = Field(min_length=1)
    subject: str = ""
    sender: str = ""
    received_at: datetime = Field(default_factory=utcnow)
    body: str = ""


class MailboxClient(ABC):
    """
    Abstract base class for mailbox clients.

    Responsibilities:
    - List candidate emails awaiting a label decision, oldest first
    - Report the live label inventory
    - Apply and remove labels on a single message

    Does NOT handle:
    - De-duplication against the queue (that's the QueueStore's job)
    - Label text parsing (that's the protocol codec's job)
    """

    @abstractmethod
    def fetch_candidates(self, limit: int) -> list[MailMessage]:
        """
        Return up to limit candidate emails, oldest first.

        Raises:
            MailboxError: Mailbox unreachable or rejected the query
        """

    @abstractmethod
    def list_labels(self) -> list[str]:
        """Return the live label inventory."""

    @abstractmethod
    def apply_label(self, message_id: str, label: str) -> None:
        """
        Attach a label to a message.

        Raises:
            LabelNotFoundError: Label is not in the live inventory
            ItemNotFoundError: Message id is unknown
        """

    @abstractmethod
    def remove_label(self, message_id: str, label: str) -> None:
        """Detach a label from a message. Same errors as apply_label."""

    @abstractmethod
    def mark_processed(self, message_id: str) -> None:
        """
        Exclude a message from future fetch_candidates() results.

        Called once a decision has been applied, including an empty one, so
        a resolved email is never queued again.
        """

    def close(self) -> None:
        """Release connections. Default implementation does nothing."""
        logger.debug("Closing mailbox client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
