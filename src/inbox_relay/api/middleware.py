"""FastAPI middleware for request tracing and logging."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

# Scraped or polled every few seconds; logged at debug only
QUIET_PATHS = frozenset({"/health", "/metrics", "/"})


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id to the structlog context for every request.

    The id is taken from an incoming X-Request-ID header when the Hub sends
    one, so a decision can be traced from the Hub to the label write.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("Request failed", exc_info=exc, duration_ms=_elapsed_ms(started))
            raise
        else:
            log("Request handled", status_code=response.status_code, duration_ms=_elapsed_ms(started))
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            structlog.contextvars.clear_contextvars()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
