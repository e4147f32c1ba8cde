"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    operation: str
    target: str
    path: str
    max_bytes: int
    field: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input validation fails."""


class ConfigurationAppError(AppError):
    """Raised when a required setting (e.g. the sender account) is missing."""


class BackendUnreachableError(AppError):
    """Raised on transport-level failures talking to the messaging backend."""


@dataclass
class BackendRejectedError(AppError):
    """Raised when the messaging backend answers with an error status."""

    status_code: int | None = None


class MediaNotFoundError(AppError):
    """Raised when an attachment path does not resolve to a readable file."""


class QueueClearedError(AppError):
    """Raised for queued sends discarded before they were dispatched."""
