"""
Service container shared by every entry point.

Holds the stores and external collaborators. Built once per process (FastAPI
dependency or Celery worker) and reused; all mutable state still lives in the
stores, so nothing here survives between invocations in a meaningful way.
"""

from dataclasses import dataclass

from inbox_relay.channel.dispatcher import ChannelDispatcher
from inbox_relay.config import Settings
from inbox_relay.mailbox import MailboxClient, build_mailbox
from inbox_relay.models.queue_models import RuntimeConfig
from inbox_relay.persistence import Stores, build_stores
from inbox_relay.protocol.message_builder import MessageBuilder


@dataclass
class RelayServices:
    stores: Stores
    mailbox: MailboxClient
    dispatcher: ChannelDispatcher
    builder: MessageBuilder
    lease_ttl_seconds: int = 60

    def load_config(self) -> RuntimeConfig:
        """Load the runtime config for this invocation."""
        config = self.stores.config.load()
        self.stores.audit.retention = config.log_retention
        return config

    def close(self) -> None:
        self.dispatcher.close()
        self.mailbox.close()


def build_services(settings: Settings) -> RelayServices:
    return RelayServices(
        stores=build_stores(settings),
        mailbox=build_mailbox(settings),
        dispatcher=ChannelDispatcher(timeout=settings.HTTP_TIMEOUT),
        builder=MessageBuilder(context_char_limit=settings.CONTEXT_CHAR_LIMIT),
        lease_ttl_seconds=settings.LEASE_TTL_SECONDS,
    )
