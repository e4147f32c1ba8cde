"""Global exception handlers for consistent error responses.

Every error response shares one JSON envelope::

    {"success": false, "error": "<message>", "code": "<code>", "request_id": "..."}

Design:
- AppError subclasses → status by type (400, 500, 502, 503)
- FastAPI request validation → 400 with a single joined message
- HTTPException → its own status; unknown routes list the valid endpoints
- Unexpected Exception → generic 500 (safety net)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from signal_gateway.core.errors import (
    AppError,
    BackendRejectedError,
    BackendUnreachableError,
    ConfigurationAppError,
    QueueClearedError,
)
from signal_gateway.core.logging import get_request_id

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = [
    "POST /send - Send messages",
    "GET /health - Health check",
    "GET /status - Queue status",
    "POST /queue/pause - Pause the send queue",
    "POST /queue/resume - Resume the send queue",
    "POST /queue/clear - Discard queued sends",
    "GET /groups - List groups",
    "POST /groups - Create group",
    "GET /receive - Get incoming messages",
    "GET /contacts - List contacts",
    "GET /qrcode - Get QR code for linking devices",
]


def _status_for(exc: AppError) -> int:
    if isinstance(exc, ConfigurationAppError):
        return 500
    if isinstance(exc, (BackendUnreachableError, BackendRejectedError)):
        return 502
    if isinstance(exc, QueueClearedError):
        return 503
    # ValidationAppError, MediaNotFoundError
    return 400


def _error_body(code: str, message: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }
    body.update(extra)
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the shared JSON envelope.

    - ValidationAppError / MediaNotFoundError → 400
    - ConfigurationAppError → 500
    - BackendUnreachableError / BackendRejectedError → 502
    - QueueClearedError → 503
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    extra: dict[str, Any] = {}
    if exc.details:
        extra["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, **extra),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Collapse FastAPI's validation error list into one message."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    message = "; ".join(parts) or "Invalid request"

    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_message": message},
    )
    return JSONResponse(status_code=400, content=_error_body("invalid_request", message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException (404, 405, 413, ...) with the shared envelope."""
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content=_error_body(
                "not_found",
                "Endpoint not found",
                available_endpoints=AVAILABLE_ENDPOINTS,
            ),
        )

    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(f"http_{exc.status_code}", message),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the full traceback while returning a generic message, so no
    implementation details reach the client.
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=_error_body("internal_server_error", "Internal server error"),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
