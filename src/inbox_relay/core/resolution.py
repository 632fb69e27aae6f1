"""
Resolution routine shared by the webhook and the batch label-application path.

Order of effects, each independently fallible:
1. apply every parsed label to the mailbox (unknown labels are reported, not fatal)
2. post CONFIRM_COMPLETE on the channel (best effort)
3. delete the queue item
4. post the next Queued item (chained advancement)

If step 1 fails outright the item is moved to Error and kept for manual
review; the chain still advances so one bad item cannot stall the queue.
"""

import time
from typing import Callable, Optional

import structlog

from inbox_relay.core.scheduler import Scheduler
from inbox_relay.core.services import RelayServices
from inbox_relay.exceptions import LabelNotFoundError
from inbox_relay.models.enums import QueueStatus
from inbox_relay.models.protocol_models import ResolutionResult
from inbox_relay.models.queue_models import QueueItem, RuntimeConfig
from inbox_relay.monitoring.metrics import labels_applied_total
from inbox_relay.protocol.codec import parse_labels

logger = structlog.get_logger(__name__)


class Resolver:
    """Resolves queue items against their label decisions."""

    def __init__(self, services: RelayServices, scheduler: Scheduler | None = None):
        self.services = services
        self.queue = services.stores.queue
        self.audit = services.stores.audit
        self.scheduler = scheduler or Scheduler(services)

    def apply_labels(self, item_id: str, labels: list[str]) -> tuple[list[str], list[str]]:
        """
        Apply labels one by one.

        Returns:
            (applied, not_found). Any error other than LabelNotFoundError
            propagates to the caller.
        """
        applied, not_found = [], []
        for label in labels:
            try:
                self.services.mailbox.apply_label(item_id, label)
            except LabelNotFoundError:
                logger.warning("Label not found", item_id=item_id, label=label)
                labels_applied_total.labels(outcome="not_found").inc()
                not_found.append(label)
                continue
            labels_applied_total.labels(outcome="applied").inc()
            applied.append(label)
        return applied, not_found

    def resolve(
        self,
        item_id: str,
        label_text: str,
        config: RuntimeConfig,
        chain: bool = True,
    ) -> ResolutionResult:
        """
        Resolve one item. Idempotent per item_id: once the item is deleted,
        a repeat call reports not-found and applies nothing.
        """
        item = self.queue.get(item_id)
        if item is None:
            logger.info("Resolution target not found", item_id=item_id)
            self.audit.record("RESOLVE", item_id, result="not_found")
            return ResolutionResult(item_id=item_id, found=False, error="Email not found in queue")

        labels = parse_labels(label_text)
        result = ResolutionResult(item_id=item_id, found=True)

        try:
            result.applied, result.not_found_labels = self.apply_labels(item_id, labels)
            self.services.mailbox.mark_processed(item_id)
        except Exception as e:
            labels_applied_total.labels(outcome="error").inc()
            logger.error("Label application failed", item_id=item_id, error=str(e), exc_info=True)
            result.error = f"{type(e).__name__}: {e}"

            item.status = QueueStatus.ERROR
            item.posted_at = None
            item.error = result.error[:500]
            self.queue.save(item)
            self.audit.record("RESOLVE", item_id, details=label_text[:200], result="Error", notes=result.error)

            if chain:
                result.next_item = self._advance(config)
            return result

        message = self.services.builder.confirm_complete(
            item_id, result.applied, result.not_found_labels, config
        )
        result.confirmed = self.services.dispatcher.post(config.channel_url, message).delivered

        self.queue.delete(item_id)
        self.audit.record(
            "RESOLVE",
            item_id,
            details=", ".join(result.applied) or "(none)",
            result="complete",
            notes=f"not found: {', '.join(result.not_found_labels)}" if result.not_found_labels else "",
        )
        logger.info(
            "Item resolved",
            item_id=item_id,
            applied=result.applied,
            not_found=result.not_found_labels,
            confirmed=result.confirmed,
        )

        if chain:
            result.next_item = self._advance(config)
        return result

    def _advance(self, config: RuntimeConfig) -> Optional[QueueItem]:
        """Post the next Queued item; failures are logged, the resolution stands."""
        try:
            next_item, _ = self.scheduler.post_next(config, trigger="chain")
        except Exception as e:
            logger.error("Chained advancement failed", error=str(e), exc_info=True)
            return None
        return next_item

    def apply_labeled_items(
        self,
        config: RuntimeConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> list[ResolutionResult]:
        """
        Batch path: resolve every stored item that already carries a decision.

        Error items are skipped. rate_limit_ms is slept between items to avoid
        hammering the mailbox; the next Queued item is posted once at the end.
        """
        pending = [
            item for item in self.queue.all()
            if item.labels_to_apply.strip() and item.status != QueueStatus.ERROR
        ]

        results = []
        for index, item in enumerate(pending):
            if index and config.rate_limit_ms:
                sleep(config.rate_limit_ms / 1000)
            results.append(self.resolve(item.item_id, item.labels_to_apply, config, chain=False))

        if pending:
            self.scheduler.post_next(config, trigger="chain")
        logger.info("Batch label application complete", processed=len(results))
        return results
