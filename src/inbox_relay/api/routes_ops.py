"""
Operational routes: on-demand scheduler runs, registration, queue and
audit inspection, health.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from inbox_relay.api.dependencies import get_services, get_settings
from inbox_relay.api.models import AuditResponse, HealthResponse, QueueResponse, RegisterRequest
from inbox_relay.config import Settings
from inbox_relay.core.registration import Registrar
from inbox_relay.core.resolution import Resolver
from inbox_relay.core.scheduler import Scheduler
from inbox_relay.core.services import RelayServices
from inbox_relay.persistence import redis_client

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/scheduler/tick", summary="Run one scheduler tick now")
async def scheduler_tick(services: RelayServices = Depends(get_services)) -> dict:
    def handle() -> dict:
        config = services.load_config()
        return Scheduler(services).tick(config).to_dict()

    return await run_in_threadpool(handle)


@router.post("/scheduler/apply", summary="Resolve every item that already has labels")
async def scheduler_apply(services: RelayServices = Depends(get_services)) -> dict:
    def handle() -> dict:
        config = services.load_config()
        results = Resolver(services).apply_labeled_items(config)
        return {
            "success": all(result.success for result in results),
            "processed": len(results),
            "results": [result.to_dict() for result in results],
        }

    return await run_in_threadpool(handle)


@router.post("/register", summary="Register this instance with the Hub")
async def register(
    body: Optional[RegisterRequest] = None,
    services: RelayServices = Depends(get_services),
) -> dict:
    def handle() -> dict:
        if body is not None:
            changes = {
                key: value
                for key, value in {
                    "channel_url": body.channelUrl,
                    "callback_url": body.callbackUrl,
                    "hub_url": body.hubUrl,
                }.items()
                if value is not None
            }
            if changes:
                services.stores.config.update(**changes)
        config = services.load_config()
        return Registrar(services).register(config).to_dict()

    return await run_in_threadpool(handle)


@router.post("/channel/test", summary="Post a connectivity probe on the channel")
async def channel_test(services: RelayServices = Depends(get_services)) -> dict:
    def handle() -> dict:
        config = services.load_config()
        result = Registrar(services).test_channel(config)
        return {"success": result.delivered, "statusCode": result.status_code, "error": result.error}

    return await run_in_threadpool(handle)


@router.get("/queue", response_model=QueueResponse, summary="Queue snapshot")
async def queue_snapshot(services: RelayServices = Depends(get_services)) -> QueueResponse:
    queue = services.stores.queue
    items = await run_in_threadpool(queue.all)
    counts = await run_in_threadpool(queue.count_by_status)
    return QueueResponse(items=items, counts=counts)


@router.get("/audit", response_model=AuditResponse, summary="Recent audit entries")
async def audit_entries(
    limit: int = Query(default=100, ge=1, le=1000),
    services: RelayServices = Depends(get_services),
) -> AuditResponse:
    entries = await run_in_threadpool(services.stores.audit.recent, limit)
    return AuditResponse(entries=entries)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={
        200: {"description": "All services healthy"},
        503: {"description": "Store backend unreachable"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    services: RelayServices = Depends(get_services),
):
    service_status = {}
    healthy = True

    if settings.STORE_BACKEND == "redis":
        service_status["redis"] = await run_in_threadpool(redis_client.ping, settings)
        healthy = service_status["redis"] == "ok"
    else:
        service_status["store"] = "memory"

    instance = settings.INSTANCE_NAME
    if healthy:
        config = await run_in_threadpool(services.load_config)
        instance = config.instance_name
        service_status["channel"] = "configured" if config.channel_url else "not_configured"
        service_status["registration"] = "registered" if config.registered else "unregistered"

    response = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=settings.APP_VERSION,
        instance=instance,
        services=service_status,
    )
    logger.info("Health check", status=response.status, services=service_status)

    if not healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )
    return response
