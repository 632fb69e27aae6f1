"""
Celery tasks for the timer-driven scheduler.

- celery_app.py: Celery application configuration (broker, backend, beat)
- relay_tasks.py: Task definitions (relay_tick, relay_recover_stale,
  relay_apply_labeled_items)
"""

from inbox_relay.tasks.celery_app import celery_app
from inbox_relay.tasks.relay_tasks import (
    apply_labeled_items_task,
    recover_stale_task,
    relay_tick_task,
)

__all__ = [
    "celery_app",
    "relay_tick_task",
    "recover_stale_task",
    "apply_labeled_items_task",
]
