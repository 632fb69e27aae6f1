"""
FastAPI exception handlers for structured error responses.

Core entry points already convert domain errors to {"success": false}
bodies; these handlers cover whatever escapes a route.
"""

from datetime import datetime, timezone

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from inbox_relay.exceptions import ConfigurationError, MailboxError, ProtocolError, RelayError

logger = structlog.get_logger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def protocol_error_handler(request: Request, exc: ProtocolError) -> JSONResponse:
    """
    Handle undecodable payloads.

    Maps to 400 Bad Request.
    """
    logger.warning("Protocol error", error_type=type(exc).__name__, details=exc.details)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "protocol_error",
            "message": exc.message,
            "details": exc.details,
            "timestamp": _timestamp(),
        },
    )


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """
    Handle missing endpoints or credentials.

    Maps to 503 Service Unavailable (the instance is not set up yet).
    """
    logger.error("Configuration error", error=exc.message)

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": False,
            "error": "not_configured",
            "message": exc.message,
            "timestamp": _timestamp(),
        },
    )


async def mailbox_error_handler(request: Request, exc: MailboxError) -> JSONResponse:
    """
    Handle mailbox failures.

    Maps to 502 Bad Gateway (upstream mailbox unavailable).
    """
    logger.error("Mailbox error", error_type=type(exc).__name__, error=exc.message)

    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "success": False,
            "error": "mailbox_error",
            "message": exc.message,
            "timestamp": _timestamp(),
        },
    )


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors (invalid request format).

    Maps to 400 Bad Request.
    """
    logger.warning("Invalid request format", errors=exc.errors())

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "invalid_request",
            "message": "Request validation failed",
            "details": exc.errors(include_url=False, include_context=False),
            "timestamp": _timestamp(),
        },
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception("Unexpected error", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "timestamp": _timestamp(),
        },
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ProtocolError: protocol_error_handler,
    ConfigurationError: configuration_error_handler,
    MailboxError: mailbox_error_handler,
    RelayError: generic_error_handler,
    PydanticValidationError: pydantic_validation_error_handler,
    Exception: generic_error_handler,
}
