"""Pydantic schemas for group, contact and inbox responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class GroupSummary(BaseModel):
    id: str
    name: str | None = None
    member_count: int = 0

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> "GroupSummary":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name"),
            member_count=len(data.get("members") or []),
        )


class GroupListResponse(BaseModel):
    success: bool = True
    count: int
    groups: list[GroupSummary]


class CreateGroupRequest(BaseModel):
    name: str = Field(..., description="Group name; must not be blank.")
    members: list[str] = Field(..., description="Phone numbers to add to the group.")


class CreatedGroup(BaseModel):
    id: str | None = None
    name: str | None = None


class CreateGroupResponse(BaseModel):
    success: bool = True
    group: CreatedGroup


class Contact(BaseModel):
    number: str | None = None
    name: str | None = None
    blocked: bool = False

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> "Contact":
        return cls(
            number=data.get("number"),
            name=data.get("name") or data.get("profile_name") or None,
            blocked=bool(data.get("blocked", False)),
        )


class ContactListResponse(BaseModel):
    success: bool = True
    count: int
    contacts: list[Contact]


class ReceivedMessage(BaseModel):
    timestamp: int | None = None
    source: str | None = None
    message: str | None = None
    group_id: str | None = None
    attachments: int = 0

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> "ReceivedMessage":
        # signal-cli wraps the payload in an "envelope" in json-rpc mode
        envelope = data.get("envelope", data)
        data_message = envelope.get("dataMessage") or {}
        group_info = data_message.get("groupInfo") or {}
        return cls(
            timestamp=envelope.get("timestamp"),
            source=envelope.get("sourceNumber") or envelope.get("source"),
            message=data_message.get("message") or None,
            group_id=group_info.get("groupId") or None,
            attachments=len(data_message.get("attachments") or []),
        )


class ReceiveResponse(BaseModel):
    success: bool = True
    count: int
    messages: list[ReceivedMessage]
