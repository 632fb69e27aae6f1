"""
Scheduler: inbox scan, single-in-flight admission and stale-item recovery.

State machine (timer-driven):

    Queued --post_next--> Posted --resolution--> (deleted)
       ^                    |
       +--- stale timeout --+--> Error (after max_item_retries)

At most one item is Posted at any time. The "select oldest Queued and mark
Posted" step runs under the "dispatch" lease, which both the timer path and
the chained advancement after a resolution acquire.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from inbox_relay.core.services import RelayServices
from inbox_relay.models.enums import QueueStatus
from inbox_relay.models.protocol_models import DispatchResult, TickResult
from inbox_relay.models.queue_models import QueueItem, RuntimeConfig, utcnow
from inbox_relay.monitoring.metrics import (
    items_enqueued_total,
    items_posted_total,
    queue_items,
    stale_items_total,
)
from inbox_relay.protocol.text_utils import bound_context

logger = structlog.get_logger(__name__)

DISPATCH_LEASE = "dispatch"


class Scheduler:
    """Drives the queue forward one item at a time."""

    def __init__(self, services: RelayServices):
        self.services = services
        self.queue = services.stores.queue
        self.audit = services.stores.audit

    def scan_inbox(self, config: RuntimeConfig) -> int:
        """
        Enqueue new candidate emails, at most batch_size per scan.

        Candidates already stored (any status) are skipped. The fetch window
        is widened by the number of stored items so long-pending emails
        cannot starve newer ones.

        Returns:
            Number of items inserted

        Raises:
            MailboxError: Mailbox unreachable
        """
        stored = {item.item_id for item in self.queue.all()}
        candidates = self.services.mailbox.fetch_candidates(config.batch_size + len(stored))

        inserted = 0
        for message in candidates:
            if inserted >= config.batch_size:
                break
            if message.message_id in stored:
                continue
            item = QueueItem(
                item_id=message.message_id,
                subject=message.subject,
                source=message.sender,
                created_at=message.received_at,
                context=bound_context(message.body, self.services.builder.context_char_limit),
            )
            if self.queue.enqueue_if_absent(item):
                inserted += 1
                self.audit.record("ENQUEUE", item.item_id, details=item.subject[:200], result="Queued")

        if inserted:
            items_enqueued_total.inc(inserted)
        logger.info("Inbox scan complete", candidates=len(candidates), inserted=inserted)
        return inserted

    def _label_inventory(self) -> list[str]:
        """Live inventory, cached on success; cached copy if the mailbox fails."""
        try:
            labels = self.services.mailbox.list_labels()
        except Exception as e:
            logger.warning("Live label inventory unavailable, using cache", error=str(e))
            return self.services.stores.config.get_label_inventory()
        self.services.stores.config.save_label_inventory(labels)
        return labels

    def post_next(
        self,
        config: RuntimeConfig,
        trigger: str = "tick",
    ) -> tuple[Optional[QueueItem], Optional[DispatchResult]]:
        """
        Post the oldest Queued item if nothing is in flight.

        The item is marked Posted before the message is sent; a failed
        dispatch leaves it Posted (recovered later by the in-flight timeout).

        Returns:
            (posted item, dispatch result), or (None, None) when nothing was
            admitted. A missing channel URL returns (None, skipped result).
        """
        if not config.channel_url:
            logger.warning("Channel URL not configured, not posting")
            return None, DispatchResult(delivered=False, skipped=True, error="channel URL not configured")

        with self.queue.lease(DISPATCH_LEASE, self.services.lease_ttl_seconds) as held:
            if not held:
                return None, None

            in_flight = self.queue.first_by_status(QueueStatus.POSTED)
            if in_flight is not None:
                logger.debug("Item already in flight", item_id=in_flight.item_id)
                return None, None

            candidate = self.queue.first_by_status(QueueStatus.QUEUED)
            if candidate is None:
                return None, None

            item = self.queue.update_status(candidate.item_id, QueueStatus.POSTED)
            if item is None:
                return None, None

        items_posted_total.labels(trigger=trigger).inc()
        message = self.services.builder.email_ready(item, self._label_inventory(), config)
        result = self.services.dispatcher.post(config.channel_url, message)

        self.audit.record(
            "POST_EMAIL_READY",
            item.item_id,
            details=f"trigger={trigger}",
            result="delivered" if result.delivered else "failed",
            notes=result.error or "",
        )
        logger.info(
            "Item posted",
            item_id=item.item_id,
            trigger=trigger,
            delivered=result.delivered,
        )
        return item, result

    def recover_stale(self, config: RuntimeConfig, now: Optional[datetime] = None) -> list[str]:
        """
        Handle Posted items older than the in-flight timeout.

        Each is put back to Queued with retry_count + 1, or moved to Error
        once max_item_retries is reached. A timeout of 0 disables recovery.

        Returns:
            Ids of the items touched
        """
        if config.inflight_timeout_minutes <= 0:
            return []

        now = now or utcnow()
        cutoff = now - timedelta(minutes=config.inflight_timeout_minutes)
        touched = []

        for item in self.queue.find_by_status(QueueStatus.POSTED):
            if item.posted_at is None or item.posted_at > cutoff:
                continue

            if item.retry_count >= config.max_item_retries:
                item.status = QueueStatus.ERROR
                item.posted_at = None
                item.error = f"No decision after {item.retry_count + 1} posts"
                outcome = "failed"
            else:
                item.status = QueueStatus.QUEUED
                item.posted_at = None
                item.retry_count += 1
                outcome = "requeued"

            if self.queue.save(item):
                touched.append(item.item_id)
                stale_items_total.labels(outcome=outcome).inc()
                self.audit.record("STALE_RECOVERY", item.item_id, result=item.status.value,
                                  notes=f"retry_count={item.retry_count}")
                logger.warning("Stale in-flight item", item_id=item.item_id, outcome=outcome)

        return touched

    def tick(self, config: RuntimeConfig) -> TickResult:
        """
        One scheduler run: recover stale, scan the inbox, post the next item.

        Never raises; failures are logged and reported in the result. A scan
        failure does not prevent posting already-queued work.
        """
        result = TickResult()
        errors = []

        try:
            result.recovered = self.recover_stale(config)
        except Exception as e:
            logger.error("Stale recovery failed", error=str(e), exc_info=True)
            errors.append(f"recover: {e}")

        try:
            result.enqueued = self.scan_inbox(config)
        except Exception as e:
            logger.error("Inbox scan failed", error=str(e), exc_info=True)
            errors.append(f"scan: {e}")

        try:
            item, dispatch = self.post_next(config, trigger="tick")
            if item is not None:
                result.posted = item.item_id
                result.delivered = dispatch.delivered if dispatch else None
            elif dispatch is not None and dispatch.skipped:
                errors.append(dispatch.error or "dispatch skipped")
        except Exception as e:
            logger.error("Posting next item failed", error=str(e), exc_info=True)
            errors.append(f"post: {e}")

        result.error = "; ".join(errors) or None
        self.sample_queue_depth()
        self.audit.record(
            "TICK",
            details=f"enqueued={result.enqueued} posted={result.posted or '-'}",
            result="ok" if result.error is None else "error",
            notes=result.error or "",
        )
        return result

    def sample_queue_depth(self) -> None:
        try:
            for status, count in self.queue.count_by_status().items():
                queue_items.labels(status=status).set(count)
        except Exception as e:
            logger.warning("Queue depth sampling failed", error=str(e))
