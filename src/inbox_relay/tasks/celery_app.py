"""
Celery application configuration for the timer-driven scheduler.

The beat schedule fires relay_tick every SCAN_INTERVAL_MINUTES. Tasks are
defined in relay_tasks.py.
"""

from celery import Celery
from celery.signals import setup_logging

from inbox_relay.config import settings
from inbox_relay.logging_config import configure_logging

celery_app = Celery(
    "inbox_relay",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,
    task_soft_time_limit=settings.CELERY_TASK_TIME_LIMIT - 30,

    # Ticks are short and must not pile up behind each other
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,

    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    timezone="UTC",
    enable_utc=True,

    result_expires=3600,
    task_track_started=True,

    beat_schedule={
        "relay-tick": {
            "task": "relay_tick",
            "schedule": settings.SCAN_INTERVAL_MINUTES * 60.0,
        },
    },
)


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Route worker and task logs through structlog instead of Celery's own setup."""
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, settings.INSTANCE_NAME)


celery_app.autodiscover_tasks(["inbox_relay.tasks"])
