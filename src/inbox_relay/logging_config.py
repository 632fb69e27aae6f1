"""Structured logging configuration using structlog.

Shared by the API process and the Celery worker. JSON lines in production,
colored console output in development; stdlib loggers (celery, uvicorn,
redis) are routed through the same processor chain.
"""

import logging
import sys
from urllib.parse import urlsplit, urlunsplit

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Chat webhook URLs carry their credentials in the query string
_URL_KEYS = ("url", "endpoint_url", "channel_url", "hub_url", "callback_url")


def _mask_url(value: str) -> str:
    parts = urlsplit(value)
    if not parts.query:
        return value
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "***", ""))


def mask_url_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace query strings of URL-valued fields with ***."""
    for key in _URL_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = _mask_url(value)
    return event_dict


def instance_context(instance_name: str) -> Processor:
    """Processor tagging every event with the service and instance name."""

    def add_instance(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", "inbox-relay")
        event_dict.setdefault("instance", instance_name)
        return event_dict

    return add_instance


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    instance_name: str = "relay",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "production" selects the JSON renderer
        instance_name: Added to every event as "instance"
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    is_production = environment.lower() == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        instance_context(instance_name),
        mask_url_secrets,
    ]
    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # One line per outbound request is already logged by the dispatcher
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).debug(
        "Logging configured",
        log_level=logging.getLevelName(level),
        renderer="json" if is_production else "console",
    )
