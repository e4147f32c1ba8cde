from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from signal_gateway.api.deps import get_orchestrator, require_sender
from signal_gateway.core.errors import ValidationAppError
from signal_gateway.core.file_validation import discard_upload, save_upload_file_limited
from signal_gateway.schemas.send import SendRequest, SendResponse
from signal_gateway.services.send_orchestrator import SendOrchestrator, parse_recipients

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Send"])

_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def _form_recipients(values: list[Any]) -> Any:
    """Merge a repeated ``recipients`` form field into one list."""
    if len(values) <= 1:
        return values[0] if values else None
    merged: list[Any] = []
    for value in values:
        merged.extend(parse_recipients(value))
    return merged


async def _read_json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be valid JSON or multipart form data",
        ) from exc

    try:
        payload = SendRequest.model_validate(body)
    except ValidationError as exc:
        raise ValidationAppError(code="invalid_request", message=_validation_message(exc)) from exc

    return {"recipients": payload.recipients, "message": payload.message, "media": payload.media}


@router.post(
    "/send",
    response_model=SendResponse,
    dependencies=[Depends(require_sender)],
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": SendRequest.model_json_schema()},
                "multipart/form-data": {
                    "schema": {
                        "type": "object",
                        "properties": {
                            "recipients": {"type": "string"},
                            "message": {"type": "string"},
                            "media": {"type": "string", "format": "binary"},
                        },
                        "required": ["recipients", "message"],
                    }
                },
            },
            "required": True,
        }
    },
)
async def send_message(
    request: Request,
    orchestrator: SendOrchestrator = Depends(get_orchestrator),
) -> SendResponse:
    """Send a message to one or more recipients.

    Accepts either a JSON body ``{"recipients": [...], "message": "...",
    "media": "/path/on/host"}`` or multipart form data with ``recipients``
    (JSON array or comma-separated), ``message`` and an optional ``media``
    file upload. Groups are addressed as ``group.<id>`` or ``group:<id>``.

    Every recipient is queued as its own job; the response reports each
    outcome and is returned with 200 even when some sends failed.
    """
    upload_path: Path | None = None
    content_type = request.headers.get("content-type", "").lower()

    try:
        if content_type.startswith(_FORM_TYPES):
            async with request.form() as form:
                fields: dict[str, Any] = {
                    "recipients": _form_recipients(form.getlist("recipients")),
                    "message": form.get("message"),
                    "media": None,
                }
                media = form.get("media")
                if isinstance(media, UploadFile) and media.filename:
                    upload_path = await save_upload_file_limited(media)
                    fields["media"] = str(upload_path)
                elif isinstance(media, str) and media.strip():
                    fields["media"] = media.strip()
        else:
            fields = await _read_json_body(request)

        batch = await orchestrator.submit_batch(
            parse_recipients(fields["recipients"]),
            fields["message"] if isinstance(fields["message"], str) else "",
            fields["media"],
        )
    finally:
        discard_upload(upload_path)

    return SendResponse.from_batch(batch)
