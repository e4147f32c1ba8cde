"""Models for send jobs, per-recipient outcomes and batch responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

RecipientKind = Literal["individual", "group"]


@dataclass(frozen=True)
class Recipient:
    """A classified send target.

    Attributes:
        raw: Identifier as supplied by the client.
        kind: "group" when the identifier carried a group marker.
        address: Identifier forwarded to the backend (marker stripped).
    """

    raw: str
    kind: RecipientKind
    address: str

    @property
    def is_group(self) -> bool:
        return self.kind == "group"


@dataclass(frozen=True)
class Job:
    """One queued send to a single recipient."""

    id: str
    batch_id: str
    recipient: Recipient
    message: str
    attachment_path: str | None
    submitted_at: float


class SendRequest(BaseModel):
    """JSON body accepted by POST /send."""

    recipients: list[str] | str | None = Field(
        default=None,
        description=(
            "Recipients as a list, a JSON array string or a comma-separated string. "
            "Groups use the 'group.<id>' or 'group:<id>' form."
        ),
    )
    message: str | None = Field(default=None, description="Message text; must not be blank.")
    media: str | None = Field(
        default=None,
        description="Optional path of a file on the gateway host to attach.",
    )


class SendOutcome(BaseModel):
    """Terminal result of one job. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    recipient: str = Field(..., description="Recipient as supplied by the client.")
    is_group: bool
    success: bool
    timestamp: str = Field(..., description="ISO-8601 UTC completion time.")
    duration_ms: int = Field(..., ge=0)
    error: str | None = Field(default=None, description="Failure message, absent on success.")
    error_code: str | None = Field(default=None, description="Machine-readable failure code.")


class BatchResult(BaseModel):
    """Aggregate of all outcomes of one send request."""

    job_id: str
    results: list[SendOutcome] = Field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return self.failure_count == 0

    @classmethod
    def from_outcomes(cls, job_id: str, outcomes: list[SendOutcome]) -> "BatchResult":
        successful = sum(1 for outcome in outcomes if outcome.success)
        return cls(
            job_id=job_id,
            results=outcomes,
            success_count=successful,
            failure_count=len(outcomes) - successful,
        )


class SendSummary(BaseModel):
    total: int
    successful: int
    failed: int


class SendResponse(BaseModel):
    """Response of POST /send; returned with 200 even on partial failure."""

    success: bool
    job_id: str
    summary: SendSummary
    results: list[SendOutcome]

    @classmethod
    def from_batch(cls, batch: BatchResult) -> "SendResponse":
        return cls(
            success=batch.success,
            job_id=batch.job_id,
            summary=SendSummary(
                total=batch.total,
                successful=batch.success_count,
                failed=batch.failure_count,
            ),
            results=batch.results,
        )
