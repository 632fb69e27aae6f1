"""
Core coordination logic.

- services.py: RelayServices container (stores, mailbox, dispatcher, builder)
- scheduler.py: inbox scan, single-in-flight admission, stale recovery, tick
- resolution.py: apply a label decision, confirm, delete, chain the next item
- reconciler.py: inbound decision handling (webhook / listener)
- commands.py: label inventory and manual label commands
- registration.py: Hub registration handshake and channel test
"""

from inbox_relay.core.commands import CommandDispatcher
from inbox_relay.core.reconciler import (
    InboundReconciler,
    InboundSource,
    ListenerInbound,
    WebhookInbound,
)
from inbox_relay.core.registration import Registrar
from inbox_relay.core.resolution import Resolver
from inbox_relay.core.scheduler import DISPATCH_LEASE, Scheduler
from inbox_relay.core.services import RelayServices, build_services

__all__ = [
    "RelayServices",
    "build_services",
    "Scheduler",
    "DISPATCH_LEASE",
    "Resolver",
    "InboundSource",
    "WebhookInbound",
    "ListenerInbound",
    "InboundReconciler",
    "CommandDispatcher",
    "Registrar",
]
