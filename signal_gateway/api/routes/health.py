from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.api.deps import get_backend_client
from signal_gateway.core.config import settings
from signal_gateway.schemas.status import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health_check(
    check_backend: bool = Query(False, description="Also probe the messaging backend."),
    backend: AbstractBackendClient = Depends(get_backend_client),
) -> HealthResponse:
    """Health check endpoint.

    Used by load balancers and monitoring systems. The backend is only
    probed on request so liveness does not depend on it.

    Returns:
        HealthResponse: status "ok", whether a sender is configured and,
            with check_backend=true, the backend probe result.
    """
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        sender="configured" if settings.backend.sender_id else "not configured",
        backend=await backend.health_check() if check_backend else None,
    )
