from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.api.deps import get_backend_client, require_sender
from signal_gateway.core.errors import ValidationAppError
from signal_gateway.schemas.messaging import (
    CreatedGroup,
    CreateGroupRequest,
    CreateGroupResponse,
    GroupListResponse,
    GroupSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Groups"], dependencies=[Depends(require_sender)])


@router.get("/groups", response_model=GroupListResponse)
async def list_groups(
    backend: AbstractBackendClient = Depends(get_backend_client),
) -> GroupListResponse:
    """List all groups the sender account is a member of."""
    groups = [GroupSummary.from_backend(g) for g in await backend.list_groups()]
    logger.info("groups.listed", extra={"count": len(groups)})
    return GroupListResponse(count=len(groups), groups=groups)


@router.post("/groups", response_model=CreateGroupResponse)
async def create_group(
    payload: CreateGroupRequest,
    backend: AbstractBackendClient = Depends(get_backend_client),
) -> CreateGroupResponse:
    """Create a new group with the given members."""
    name = payload.name.strip()
    if not name:
        raise ValidationAppError(
            code="invalid_group_name",
            message="name is required and must be a non-empty string",
            details={"field": "name"},
        )

    members = [m.strip() for m in payload.members if m.strip()]
    if not members:
        raise ValidationAppError(
            code="invalid_group_members",
            message="members is required and must be a non-empty array of phone numbers",
            details={"field": "members"},
        )

    group = await backend.create_group(name, members)
    logger.info("groups.created", extra={"member_count": len(members)})

    return CreateGroupResponse(
        group=CreatedGroup(id=group.get("id"), name=group.get("name", name)),
    )
