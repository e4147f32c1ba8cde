from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers). The backend client, send queue and orchestrator are created once
per app in the lifespan and torn down on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI

from signal_gateway.adapters.backend import AbstractBackendClient, create_backend_client
from signal_gateway.api.routes import (
    devices_router,
    groups_router,
    health_router,
    inbox_router,
    queue_router,
    send_router,
)
from signal_gateway.core.config import QueueSettings, settings
from signal_gateway.core.exception_handlers import setup_exception_handlers
from signal_gateway.core.logging import configure_logging
from signal_gateway.core.middleware import request_id_middleware
from signal_gateway.core.openapi import apply_openapi_customizations
from signal_gateway.services.send_orchestrator import SendOrchestrator
from signal_gateway.services.send_queue import SendQueue

logger = logging.getLogger(__name__)


def _build_lifespan(
    backend_client: AbstractBackendClient | None,
    queue_settings: QueueSettings | None,
):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if not settings.backend.sender_id:
            logger.warning(
                "config.sender_not_configured",
                extra={"hint": "Set BACKEND_SENDER_ID before sending messages."},
            )

        Path(settings.app.upload_dir).mkdir(parents=True, exist_ok=True)

        queue_cfg = queue_settings or settings.queue
        backend = backend_client or create_backend_client()
        queue = SendQueue(
            concurrency_limit=queue_cfg.concurrency_limit,
            min_interval_ms=queue_cfg.min_interval_ms,
        )

        app.state.backend_client = backend
        app.state.send_queue = queue
        app.state.orchestrator = SendOrchestrator(queue, backend)

        logger.info(
            "app.started",
            extra={
                "port": settings.app.port,
                "backend_url": settings.backend.base_url,
                "sender": "configured" if settings.backend.sender_id else "not configured",
                "min_interval_ms": queue_cfg.min_interval_ms,
            },
        )
        try:
            yield
        finally:
            await queue.close()
            await backend.aclose()
            logger.info("app.stopped")

    return lifespan


def create_app(
    *,
    backend_client: AbstractBackendClient | None = None,
    queue_settings: QueueSettings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        backend_client: Optional client to use instead of the configured HTTP
            client (tests inject fakes here).
        queue_settings: Optional queue settings overriding the environment.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Signal Gateway",
        description=(
            "REST gateway in front of a signal-cli REST API backend. Sends are "
            "validated, fanned out per recipient and serialized through a "
            "rate-limited queue; groups, contacts, inbox and device linking are "
            "forwarded to the backend."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=_build_lifespan(backend_client, queue_settings),
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(send_router)
    app.include_router(groups_router)
    app.include_router(inbox_router)
    app.include_router(devices_router)
    app.include_router(queue_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
