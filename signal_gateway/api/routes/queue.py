from __future__ import annotations

from fastapi import APIRouter, Depends

from signal_gateway.api.deps import get_send_queue
from signal_gateway.core.config import settings
from signal_gateway.schemas.status import QueueControlResponse, StatusConfig, StatusResponse
from signal_gateway.services.send_queue import SendQueue
from signal_gateway.utils.masking import mask_sender

router = APIRouter(tags=["Queue"])

# Handlers stay async: the queue must only be touched from the event loop,
# and sync handlers run in a worker thread.


@router.get("/status", response_model=StatusResponse)
async def queue_status(queue: SendQueue = Depends(get_send_queue)) -> StatusResponse:
    """Report send queue state and the effective configuration."""
    return StatusResponse(
        queue=queue.status(),
        config=StatusConfig(
            sender=mask_sender(settings.backend.sender_id),
            min_interval_ms=queue.min_interval_ms,
            backend_url=settings.backend.base_url,
        ),
    )


@router.post("/queue/pause", response_model=QueueControlResponse, response_model_exclude_none=True)
async def pause_queue(queue: SendQueue = Depends(get_send_queue)) -> QueueControlResponse:
    """Stop dispatching queued sends; a send already running completes."""
    queue.pause()
    return QueueControlResponse(queue=queue.status())


@router.post("/queue/resume", response_model=QueueControlResponse, response_model_exclude_none=True)
async def resume_queue(queue: SendQueue = Depends(get_send_queue)) -> QueueControlResponse:
    queue.resume()
    return QueueControlResponse(queue=queue.status())


@router.post("/queue/clear", response_model=QueueControlResponse)
async def clear_queue(queue: SendQueue = Depends(get_send_queue)) -> QueueControlResponse:
    """Discard sends that have not started; they are reported as failed."""
    cleared = queue.clear()
    return QueueControlResponse(queue=queue.status(), cleared=cleared)
