"""Fan-out of one send request into per-recipient queued jobs.

A request naming N recipients becomes N independent jobs on the shared
``SendQueue``. Each job resolves to a ``SendOutcome`` and never raises, so
one recipient's failure cannot abort its siblings. The orchestrator waits for
all jobs to settle and folds the outcomes into a ``BatchResult``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.core.errors import AppError, QueueClearedError, ValidationAppError
from signal_gateway.schemas.send import BatchResult, Job, Recipient, SendOutcome
from signal_gateway.services.send_queue import SendQueue
from signal_gateway.utils.attachments import encode_attachment
from signal_gateway.utils.masking import mask_recipient

logger = logging.getLogger(__name__)

# Accepted client-side group markers; both are stripped before forwarding.
GROUP_MARKERS = ("group.", "group:")

_JOB_ID_ALPHABET = string.ascii_lowercase + string.digits


def classify_recipient(raw: str) -> Recipient:
    """Classify a recipient identifier as individual or group.

    Examples:
        >>> classify_recipient("group.abc123").address
        'abc123'
        >>> classify_recipient("+15551234567").kind
        'individual'
    """
    value = raw.strip()
    for marker in GROUP_MARKERS:
        if value.startswith(marker):
            return Recipient(raw=value, kind="group", address=value[len(marker):])
    return Recipient(raw=value, kind="individual", address=value)


def parse_recipients(value: Any) -> list[Any]:
    """Normalize recipients given as a list, JSON array string or CSV string.

    Raises:
        ValidationAppError: If the value is neither a list nor a string.
    """
    if value is None:
        return []

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            value = decoded
        else:
            return [part.strip() for part in text.split(",") if part.strip()]

    if not isinstance(value, (list, tuple)):
        raise ValidationAppError(
            code="invalid_recipients",
            message="recipients is required and must be a non-empty array",
            details={"field": "recipients"},
        )

    # Blank or non-string entries are kept so validation can reject them.
    return [item.strip() if isinstance(item, str) else item for item in value]


def new_job_id() -> str:
    suffix = "".join(secrets.choice(_JOB_ID_ALPHABET) for _ in range(9))
    return f"job-{int(time.time() * 1000)}-{suffix}"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SendOrchestrator:
    """Runs multi-recipient send requests through the shared send queue.

    Attributes:
        queue: The process-wide send queue.
        backend: Messaging backend client used by every job.
    """

    def __init__(
        self,
        queue: SendQueue,
        backend: AbstractBackendClient,
        *,
        encoder: Callable[[str], str] = encode_attachment,
    ) -> None:
        self.queue = queue
        self.backend = backend
        self._encoder = encoder

    def _validate(self, recipients: Sequence[str], message: str) -> list[Recipient]:
        """Validate the request before anything is queued.

        Raises:
            ValidationAppError: On an empty recipient list, a blank recipient
                or a blank message.
        """
        if not recipients or isinstance(recipients, str):
            raise ValidationAppError(
                code="invalid_recipients",
                message="recipients is required and must be a non-empty array",
                details={"field": "recipients"},
            )

        classified: list[Recipient] = []
        for raw in recipients:
            if not isinstance(raw, str) or not raw.strip():
                raise ValidationAppError(
                    code="invalid_recipients",
                    message="each recipient must be a non-empty string",
                    details={"field": "recipients"},
                )
            recipient = classify_recipient(raw)
            if not recipient.address:
                raise ValidationAppError(
                    code="invalid_recipients",
                    message=f"group recipient '{raw.strip()}' has no group id",
                    details={"field": "recipients"},
                )
            classified.append(recipient)

        if not isinstance(message, str) or not message.strip():
            raise ValidationAppError(
                code="invalid_message",
                message="message is required and must be a non-empty string",
                details={"field": "message"},
            )

        return classified

    async def _encode(self, path: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._encoder, path)

    async def _run_job(self, job: Job) -> SendOutcome:
        """Execute one send. Always returns an outcome, never raises."""
        recipient = job.recipient
        masked = mask_recipient(recipient.address, is_group=recipient.is_group)
        start = time.perf_counter()
        error: AppError | Exception | None = None

        try:
            attachment = await self._encode(job.attachment_path) if job.attachment_path else None
            if recipient.is_group:
                await self.backend.send_group(recipient.address, job.message, attachment)
            else:
                await self.backend.send_individual(recipient.address, job.message, attachment)
        except AppError as exc:
            error = exc
        except Exception as exc:
            logger.exception(
                "send.job_crashed",
                extra={"job_id": job.id, "recipient": masked, "is_group": recipient.is_group},
            )
            error = exc

        duration_ms = int((time.perf_counter() - start) * 1000)

        if error is None:
            logger.info(
                "send.job_succeeded",
                extra={
                    "job_id": job.id,
                    "recipient": masked,
                    "is_group": recipient.is_group,
                    "duration_ms": duration_ms,
                    "has_media": job.attachment_path is not None,
                },
            )
            return SendOutcome(
                recipient=recipient.raw,
                is_group=recipient.is_group,
                success=True,
                timestamp=_utc_now_iso(),
                duration_ms=duration_ms,
            )

        if isinstance(error, AppError):
            message, code = error.message, error.code
        else:
            message, code = str(error) or type(error).__name__, "send_failed"

        logger.error(
            "send.job_failed",
            extra={
                "job_id": job.id,
                "recipient": masked,
                "is_group": recipient.is_group,
                "error_code": code,
                "error_message": message,
                "duration_ms": duration_ms,
            },
        )
        return SendOutcome(
            recipient=recipient.raw,
            is_group=recipient.is_group,
            success=False,
            timestamp=_utc_now_iso(),
            duration_ms=duration_ms,
            error=message,
            error_code=code,
        )

    def _discarded_outcome(self, job: Job, exc: BaseException) -> SendOutcome:
        """Outcome for a job whose future was rejected by the queue."""
        if isinstance(exc, AppError):
            message, code = exc.message, exc.code
        else:
            message, code = str(exc) or type(exc).__name__, "send_failed"

        logger.warning(
            "send.job_discarded",
            extra={"job_id": job.id, "error_code": code},
        )
        return SendOutcome(
            recipient=job.recipient.raw,
            is_group=job.recipient.is_group,
            success=False,
            timestamp=_utc_now_iso(),
            duration_ms=0,
            error=message,
            error_code=code,
        )

    def _submit(self, job: Job) -> asyncio.Future:
        try:
            return self.queue.submit(lambda: self._run_job(job), label=job.id)
        except QueueClearedError as exc:
            # Queue already shut down: report the job as discarded.
            future = asyncio.get_running_loop().create_future()
            future.set_exception(exc)
            return future

    async def submit_batch(
        self,
        recipients: Sequence[str],
        message: str,
        attachment_path: str | None = None,
        *,
        job_id: str | None = None,
    ) -> BatchResult:
        """Queue one send per recipient and aggregate all outcomes.

        Args:
            recipients: Non-empty list of recipients; duplicates are sent twice.
            message: Message text, must not be blank.
            attachment_path: Optional local file to attach to every send.
            job_id: Batch correlation id; generated when omitted.

        Returns:
            BatchResult with one outcome per recipient in submission order.

        Raises:
            ValidationAppError: If inputs are invalid (nothing is queued).
        """
        classified = self._validate(recipients, message)
        batch_id = job_id or new_job_id()

        logger.info(
            "send.batch_received",
            extra={
                "job_id": batch_id,
                "recipient_count": len(classified),
                "has_media": attachment_path is not None,
                "message_length": len(message),
            },
        )

        jobs = [
            Job(
                id=f"{batch_id}-{index}",
                batch_id=batch_id,
                recipient=recipient,
                message=message,
                attachment_path=attachment_path,
                submitted_at=time.monotonic(),
            )
            for index, recipient in enumerate(classified)
        ]

        # Submit synchronously so this batch's jobs keep their relative order.
        futures = [self._submit(job) for job in jobs]
        settled = await asyncio.gather(*futures, return_exceptions=True)

        outcomes: list[SendOutcome] = []
        for job, result in zip(jobs, settled):
            if isinstance(result, SendOutcome):
                outcomes.append(result)
            else:
                outcomes.append(self._discarded_outcome(job, result))

        batch = BatchResult.from_outcomes(batch_id, outcomes)

        logger.info(
            "send.batch_completed",
            extra={
                "job_id": batch_id,
                "successful": batch.success_count,
                "failed": batch.failure_count,
                "total": batch.total,
            },
        )
        return batch
