"""
FastAPI application entry point for the inbox relay.
"""

import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from inbox_relay.api.dependencies import get_services
from inbox_relay.api.error_handlers import EXCEPTION_HANDLERS
from inbox_relay.api.middleware import RequestTracingMiddleware
from inbox_relay.api.routes_ops import router as ops_router
from inbox_relay.api.routes_webhook import router as webhook_router
from inbox_relay.config import settings
from inbox_relay.logging_config import configure_logging
from inbox_relay.persistence.redis_client import RedisClient

# Configure structured logging before any other imports
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, settings.INSTANCE_NAME)
logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Single-in-flight label coordination between a mailbox and a chat-channel oracle",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (must be first for request_id in all logs)
app.add_middleware(RequestTracingMiddleware)

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.include_router(webhook_router, tags=["inbound"])
app.include_router(ops_router, tags=["operations"])


@app.on_event("startup")
async def startup():
    """Application startup - log the effective configuration."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        instance=settings.INSTANCE_NAME,
        store_backend=settings.STORE_BACKEND,
        mailbox_backend=settings.MAILBOX_BACKEND,
        scan_interval_minutes=settings.SCAN_INTERVAL_MINUTES,
    )
    if not settings.CHANNEL_URL:
        logger.warning("CHANNEL_URL not set; items will not be posted until it is configured")


@app.on_event("shutdown")
async def shutdown():
    """Application shutdown - close outbound clients."""
    logger.info("Application shutdown")
    if get_services.cache_info().currsize:
        get_services().close()
    RedisClient.close_sync_pool()


if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "instance": settings.INSTANCE_NAME,
        "docs": "/docs",
        "health": "/health",
        "webhook": "/webhook",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inbox_relay.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
