from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.api.deps import get_backend_client
from signal_gateway.schemas.status import QRCodeResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Devices"])

QR_INSTRUCTIONS = "Open Signal app > Settings > Linked Devices > + > Scan QR code"


@router.get("/qrcode", response_model=QRCodeResponse)
async def qrcode_link(
    device_name: str = Query("signal-api", min_length=1, description="Name shown for the linked device."),
    backend: AbstractBackendClient = Depends(get_backend_client),
) -> QRCodeResponse:
    """Return the link serving the QR code used to link a new device."""
    link = backend.device_link_url(device_name)
    logger.info("qrcode.link_generated", extra={"device_name": device_name})
    return QRCodeResponse(
        device_name=device_name,
        qr_code_link=link,
        instructions=QR_INSTRUCTIONS,
    )
