"""
Inbound routes: the webhook the Hub calls and the command endpoint.

Both always answer HTTP 200; failures are reported in the JSON body so the
Hub never retries on our behalf.
"""

import json
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from inbox_relay.api.dependencies import get_services, get_settings
from inbox_relay.config import Settings
from inbox_relay.core.commands import CommandDispatcher
from inbox_relay.core.reconciler import InboundReconciler
from inbox_relay.core.services import RelayServices

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _read_json(request: Request) -> tuple[Any, str | None]:
    body = await request.body()
    try:
        return json.loads(body or b"null"), None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Invalid JSON body", path=request.url.path, error=str(e))
        return None, f"Invalid JSON: {e}"


@router.get("/webhook", summary="Webhook liveness probe")
async def webhook_status(
    services: RelayServices = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> dict:
    status, instance = "ok", settings.INSTANCE_NAME
    try:
        config = await run_in_threadpool(services.load_config)
    except Exception as e:
        logger.error("Config unavailable for webhook status", error=str(e))
        status = "degraded"
    else:
        instance = config.instance_name
    return {
        "status": status,
        "instance": instance,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post(
    "/webhook",
    summary="Receive a label decision or ping",
    description="""
    Accepts `{"action": "update_labels", "emailId": ..., "labels": ...}`,
    `{"action": "ping"}` and the legacy form without an action.
    """,
)
async def webhook(request: Request, services: RelayServices = Depends(get_services)) -> dict:
    payload, error = await _read_json(request)
    if error:
        return {"success": False, "error": error}

    return await run_in_threadpool(InboundReconciler(services).receive, payload)


@router.post("/command", summary="Execute a label command")
async def command(request: Request, services: RelayServices = Depends(get_services)) -> dict:
    payload, error = await _read_json(request)
    if error:
        return {"success": False, "error": error}

    return await run_in_threadpool(CommandDispatcher(services).execute, payload)
