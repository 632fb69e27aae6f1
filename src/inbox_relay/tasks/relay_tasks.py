"""
Celery tasks driving the relay.

Tasks take no arguments beyond JSON-serializable values and return dicts.
Each run loads the runtime config from the store; the scheduler itself
never raises, so Celery-level retries are not used.
"""

import time
from typing import Optional

import structlog
from celery import Task

from inbox_relay.config import settings
from inbox_relay.core.resolution import Resolver
from inbox_relay.core.scheduler import Scheduler
from inbox_relay.core.services import RelayServices, build_services
from inbox_relay.models.protocol_models import TickResult
from inbox_relay.models.queue_models import RuntimeConfig
from inbox_relay.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)


class RelayTask(Task):
    """
    Base task class with resource initialization.

    Builds the service container once per worker process and reuses it
    across task invocations.
    """

    _services = None

    @property
    def services(self) -> RelayServices:
        if self._services is None:
            self._services = build_services(settings)
        return self._services

    def runtime_config(self) -> tuple[Optional[RuntimeConfig], Optional[str]]:
        """Load the runtime config; on failure return (None, error message)."""
        try:
            return self.services.load_config(), None
        except Exception as e:
            logger.error("Runtime config unavailable", task=self.name, error=str(e), exc_info=True)
            return None, f"{type(e).__name__}: {e}"


@celery_app.task(bind=True, base=RelayTask, name="relay_tick")
def relay_tick_task(self: RelayTask) -> dict:
    """
    Scheduled tick: recover stale items, scan the inbox, post the next item.

    Returns:
        TickResult as dict
    """
    start_time = time.time()
    config, error = self.runtime_config()
    if config is None:
        result = TickResult(error=error)
    else:
        result = Scheduler(self.services).tick(config)

    logger.info(
        "Relay tick completed",
        task_id=self.request.id,
        enqueued=result.enqueued,
        posted=result.posted,
        recovered=len(result.recovered),
        duration_ms=int((time.time() - start_time) * 1000),
        error=result.error,
    )
    return result.to_dict()


@celery_app.task(bind=True, base=RelayTask, name="relay_recover_stale")
def recover_stale_task(self: RelayTask) -> dict:
    """Run stale in-flight recovery on its own, without scanning or posting."""
    config, error = self.runtime_config()
    if config is None:
        return {"recovered": [], "error": error}
    touched = Scheduler(self.services).recover_stale(config)
    logger.info("Stale recovery completed", task_id=self.request.id, touched=len(touched))
    return {"recovered": touched}


@celery_app.task(bind=True, base=RelayTask, name="relay_apply_labeled_items")
def apply_labeled_items_task(self: RelayTask) -> dict:
    """Resolve every stored item that already carries a label decision."""
    config, error = self.runtime_config()
    if config is None:
        return {"processed": 0, "results": [], "error": error}
    results = Resolver(self.services).apply_labeled_items(config)
    logger.info("Batch apply completed", task_id=self.request.id, processed=len(results))
    return {
        "processed": len(results),
        "results": [result.to_dict() for result in results],
    }
