"""Pydantic schemas for health, status and queue control responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class QueueStatus(BaseModel):
    """Read-only snapshot of the send queue."""

    initialized: bool = Field(
        ..., description="False until the first send has been enqueued."
    )
    pending: int = Field(..., description="Jobs waiting to be dispatched.")
    running: int = Field(..., description="Jobs currently executing.")
    paused: bool
    concurrency_limit: int
    min_interval_ms: int


class HealthResponse(BaseModel):
    success: bool = True
    status: str = "ok"
    timestamp: str
    sender: str = Field(..., description="'configured' or 'not configured'.")
    backend: dict[str, Any] | None = Field(
        default=None,
        description="Backend probe result, only when check_backend=true.",
    )


class StatusConfig(BaseModel):
    sender: str
    min_interval_ms: int
    backend_url: str


class StatusResponse(BaseModel):
    success: bool = True
    status: str = "ok"
    queue: QueueStatus
    config: StatusConfig


class QueueControlResponse(BaseModel):
    success: bool = True
    queue: QueueStatus
    cleared: int | None = Field(
        default=None, description="Number of discarded jobs (clear only)."
    )


class QRCodeResponse(BaseModel):
    success: bool = True
    device_name: str
    qr_code_link: str
    instructions: str
