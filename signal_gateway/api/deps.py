"""FastAPI dependencies exposing the services built at startup.

The backend client, send queue and orchestrator are created once in the app
lifespan and stored on ``app.state``; routes receive them through
``Depends`` instead of importing module-level singletons.
"""

from __future__ import annotations

from fastapi import Request

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.core.config import settings
from signal_gateway.core.errors import ConfigurationAppError
from signal_gateway.services.send_orchestrator import SendOrchestrator
from signal_gateway.services.send_queue import SendQueue


def get_backend_client(request: Request) -> AbstractBackendClient:
    return request.app.state.backend_client


def get_send_queue(request: Request) -> SendQueue:
    return request.app.state.send_queue


def get_orchestrator(request: Request) -> SendOrchestrator:
    return request.app.state.orchestrator


def require_sender() -> None:
    """Fail fast with a 500 when no sender account is configured."""
    if not settings.backend.sender_id:
        raise ConfigurationAppError(
            code="sender_not_configured",
            message="BACKEND_SENDER_ID not configured. Set it in your environment or .env file.",
        )
