from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.api.deps import get_backend_client, require_sender
from signal_gateway.schemas.messaging import (
    Contact,
    ContactListResponse,
    ReceivedMessage,
    ReceiveResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Inbox"], dependencies=[Depends(require_sender)])


@router.get("/receive", response_model=ReceiveResponse)
async def receive_messages(
    backend: AbstractBackendClient = Depends(get_backend_client),
) -> ReceiveResponse:
    """Fetch messages received by the sender account since the last call."""
    messages = [ReceivedMessage.from_backend(m) for m in await backend.list_received()]
    logger.info("messages.received", extra={"count": len(messages)})
    return ReceiveResponse(count=len(messages), messages=messages)


@router.get("/contacts", response_model=ContactListResponse)
async def list_contacts(
    backend: AbstractBackendClient = Depends(get_backend_client),
) -> ContactListResponse:
    """List the sender account's contacts."""
    contacts = [Contact.from_backend(c) for c in await backend.list_contacts()]
    logger.info("contacts.listed", extra={"count": len(contacts)})
    return ContactListResponse(count=len(contacts), contacts=contacts)
