"""
Inbound reconciliation: match an externally sent label decision to a queue
item and advance the state machine.

Two inbound variants exist, selected by RuntimeConfig.inbound_mode:
- webhook: the oracle (or Hub) POSTs JSON to this instance
- listener: a forwarding listener; not implemented, reports so explicitly
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import structlog

from inbox_relay.core.resolution import Resolver
from inbox_relay.core.services import RelayServices
from inbox_relay.exceptions import ProtocolError, UnknownActionError
from inbox_relay.models.enums import InboundMode, QueueStatus, WebhookAction
from inbox_relay.models.queue_models import RuntimeConfig
from inbox_relay.monitoring.metrics import reconciliations_total
from inbox_relay.protocol.codec import parse_webhook

logger = structlog.get_logger(__name__)


class InboundSource(ABC):
    """How label decisions arrive at this instance."""

    mode: InboundMode

    @abstractmethod
    def receive(self, payload: Any, config: RuntimeConfig) -> dict:
        """Handle one inbound payload. Returns a {"success": bool, ...} body."""


class WebhookInbound(InboundSource):
    """Decisions delivered as JSON to the webhook endpoint."""

    mode = InboundMode.WEBHOOK

    def __init__(self, services: RelayServices, resolver: Resolver | None = None):
        self.services = services
        self.queue = services.stores.queue
        self.audit = services.stores.audit
        self.resolver = resolver or Resolver(services)

    def receive(self, payload: Any, config: RuntimeConfig) -> dict:
        try:
            decision = parse_webhook(payload)
        except UnknownActionError as e:
            logger.warning("Unknown webhook action", action=e.action)
            reconciliations_total.labels(action="unknown", outcome="rejected").inc()
            self.audit.record("WEBHOOK", details=str(e.action), result="unknown_action")
            return {"success": False, "error": e.message, "validActions": e.valid_actions}
        except ProtocolError as e:
            item_id = e.details.get("emailId")
            logger.warning("Malformed webhook payload", error=e.message, item_id=item_id)
            reconciliations_total.labels(action="update_labels", outcome="rejected").inc()
            self.audit.record("WEBHOOK", item_id or "SYSTEM", result="malformed", notes=e.message)
            return {"success": False, "error": e.message, "emailId": item_id}

        if decision.action == WebhookAction.PING:
            reconciliations_total.labels(action="ping", outcome="ok").inc()
            response = {
                "success": True,
                "action": "ping",
                "message": "pong",
                "instance": config.instance_name,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            if decision.test_id:
                response["testId"] = decision.test_id
            return response

        if decision.item_id:
            matched_by = "emailId"
            item = self.queue.set_labels(decision.item_id, decision.labels)
            if item is None:
                logger.info("Webhook for unknown item", item_id=decision.item_id)
                reconciliations_total.labels(action="update_labels", outcome="not_found").inc()
                self.audit.record("WEBHOOK", decision.item_id, details=decision.labels[:200], result="not_found")
                return {"success": False, "error": "Email not found in queue", "emailId": decision.item_id}
        else:
            # Best-effort match for reply channels that cannot carry the id back
            matched_by = "inflight"
            awaiting = [
                item for item in self.queue.find_by_status(QueueStatus.POSTED)
                if not item.labels_to_apply
            ]
            if not awaiting:
                reconciliations_total.labels(action="update_labels", outcome="not_found").inc()
                self.audit.record("WEBHOOK", details=decision.labels[:200], result="no_inflight_item")
                return {"success": False, "error": "No in-flight email awaiting labels"}
            item = self.queue.set_labels(awaiting[0].item_id, decision.labels)
            if item is None:
                reconciliations_total.labels(action="update_labels", outcome="not_found").inc()
                return {"success": False, "error": "Email not found in queue", "emailId": awaiting[0].item_id}

        result = self.resolver.resolve(item.item_id, decision.labels, config)
        reconciliations_total.labels(
            action="update_labels",
            outcome="resolved" if result.success else "error",
        ).inc()

        response = result.to_dict()
        response.update({"action": "update_labels", "matchedBy": matched_by, "legacy": decision.legacy})
        return response


class ListenerInbound(InboundSource):
    """Listener-forwarded decisions. Placeholder: always reports not implemented."""

    mode = InboundMode.LISTENER

    def __init__(self, services: RelayServices):
        self.audit = services.stores.audit

    def receive(self, payload: Any, config: RuntimeConfig) -> dict:
        logger.warning("Listener inbound mode is not implemented")
        reconciliations_total.labels(action="listener", outcome="not_implemented").inc()
        self.audit.record("WEBHOOK", result="not_implemented", notes="inbound_mode=listener")
        return {
            "success": False,
            "error": "Inbound mode 'listener' is not implemented",
            "inboundMode": InboundMode.LISTENER.value,
        }


class InboundReconciler:
    """Entry point for inbound decisions; dispatches on the configured mode."""

    def __init__(self, services: RelayServices, resolver: Resolver | None = None):
        self.services = services
        self.sources: dict[InboundMode, InboundSource] = {
            InboundMode.WEBHOOK: WebhookInbound(services, resolver),
            InboundMode.LISTENER: ListenerInbound(services),
        }

    def receive(self, payload: Any, config: RuntimeConfig | None = None) -> dict:
        """
        Never raises; every failure becomes a success=false body.

        Without a config, one is loaded from the store inside the same guard.
        """
        try:
            if config is None:
                config = self.services.load_config()
            return self.sources[config.inbound_mode].receive(payload, config)
        except Exception as e:
            logger.error("Inbound reconciliation failed", error=str(e), exc_info=True)
            reconciliations_total.labels(action="unknown", outcome="error").inc()
            return {"success": False, "error": f"{type(e).__name__}: {e}"}
