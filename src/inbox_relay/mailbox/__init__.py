"""
Mailbox clients (external item source and label target).

- base_client.py: MailboxClient interface and MailMessage
- imap_client.py: Gmail over IMAP (X-GM-MSGID / X-GM-LABELS)
- memory_client.py: in-process mailbox for local runs and tests
"""

from inbox_relay.config import Settings
from inbox_relay.mailbox.base_client import MailboxClient, MailMessage
from inbox_relay.mailbox.imap_client import ImapMailboxClient
from inbox_relay.mailbox.memory_client import MemoryMailboxClient


def build_mailbox(settings: Settings) -> MailboxClient:
    """Build the mailbox client selected by MAILBOX_BACKEND."""
    if settings.MAILBOX_BACKEND == "memory":
        return MemoryMailboxClient()
    return ImapMailboxClient(
        host=settings.IMAP_HOST,
        port=settings.IMAP_PORT,
        username=settings.IMAP_USERNAME,
        password=settings.IMAP_PASSWORD,
        folder=settings.IMAP_FOLDER,
        search=settings.IMAP_SEARCH,
    )


__all__ = [
    "MailboxClient",
    "MailMessage",
    "ImapMailboxClient",
    "MemoryMailboxClient",
    "build_mailbox",
]
