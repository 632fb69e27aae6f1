"""Shared test fixtures and configuration for all tests.

Everything runs against the in-process backends (memory stores, memory
mailbox) and an httpx.MockTransport standing in for the chat channel, so no
Redis, IMAP server or network is needed.
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from inbox_relay.channel.dispatcher import ChannelDispatcher
from inbox_relay.config import Settings
from inbox_relay.core.services import RelayServices
from inbox_relay.mailbox.base_client import MailMessage
from inbox_relay.mailbox.memory_client import MemoryMailboxClient
from inbox_relay.models.queue_models import RuntimeConfig
from inbox_relay.persistence import build_stores
from inbox_relay.protocol.message_builder import MessageBuilder

CHANNEL_URL = "https://chat.example.com/hooks/relay"
CALLBACK_URL = "https://relay.example.com/webhook"
HUB_URL = "https://hub.example.com/exec"
LABELS = ["Work", "Personal", "Receipts"]
BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class ChannelRecorder:
    """MockTransport handler recording every outbound request.

    Set status_code (or per-URL statuses) to simulate a rejecting endpoint.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.statuses: dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.get(str(request.url), self.status_code)
        return httpx.Response(status, json={"ok": status == 200})

    def payloads(self, url: str | None = None) -> list[dict]:
        return [
            json.loads(request.content)
            for request in self.requests
            if url is None or str(request.url) == url
        ]

    @property
    def messages(self) -> list[str]:
        """Channel message texts, in posting order."""
        return [payload["text"] for payload in self.payloads(CHANNEL_URL)]


def make_message(n: int, **overrides) -> MailMessage:
    values = {
        "message_id": f"msg-{n}",
        "subject": f"Subject {n}",
        "sender": f"sender{n}@example.com",
        "received_at": BASE_TIME + timedelta(minutes=n),
        "body": f"Body of message {n}. Please file it.",
    }
    values.update(overrides)
    return MailMessage(**values)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with in-process backends.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.BATCH_SIZE = 2
    """
    return Settings(
        # === Application ===
        APP_NAME="Inbox Relay (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Instance ===
        INSTANCE_NAME="alpha",
        ACCOUNT_EMAIL="owner@example.com",

        # === Backends ===
        STORE_BACKEND="memory",
        MAILBOX_BACKEND="memory",

        # === Channel / Hub ===
        CHANNEL_URL=CHANNEL_URL,
        CALLBACK_URL=CALLBACK_URL,
        HUB_URL="",
        HTTP_TIMEOUT=5.0,

        # === Queue ===
        BATCH_SIZE=10,
        RATE_LIMIT_MS=1000,
        INFLIGHT_TIMEOUT_MINUTES=120,
        MAX_ITEM_RETRIES=3,
        LOG_RETENTION=500,
        CONTEXT_CHAR_LIMIT=10000,

        PROMETHEUS_ENABLED=False,
    )


@pytest.fixture
def channel() -> ChannelRecorder:
    return ChannelRecorder()


@pytest.fixture
def mailbox() -> MemoryMailboxClient:
    """Mailbox with three unprocessed messages, msg-1 oldest."""
    return MemoryMailboxClient(
        labels=list(LABELS),
        messages=[make_message(3), make_message(1), make_message(2)],
    )


@pytest.fixture
def services(test_settings, mailbox, channel) -> RelayServices:
    return RelayServices(
        stores=build_stores(test_settings),
        mailbox=mailbox,
        dispatcher=ChannelDispatcher(timeout=5.0, transport=httpx.MockTransport(channel)),
        builder=MessageBuilder(context_char_limit=test_settings.CONTEXT_CHAR_LIMIT),
        lease_ttl_seconds=test_settings.LEASE_TTL_SECONDS,
    )


@pytest.fixture
def config(services) -> RuntimeConfig:
    return services.load_config()


@pytest.fixture
def message_factory():
    """Build MailMessage objects; msg-N is received N minutes after BASE_TIME."""
    return make_message
