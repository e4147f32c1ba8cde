"""OpenAPI metadata and customization utilities.

Adds tag descriptions to the generated schema, keeping documentation
concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Send",
        "description": "Queue messages to individuals and groups.",
    },
    {
        "name": "Groups",
        "description": "List and create groups of the sender account.",
    },
    {
        "name": "Inbox",
        "description": "Received messages and contacts.",
    },
    {
        "name": "Devices",
        "description": "Linking additional devices via QR code.",
    },
    {
        "name": "Queue",
        "description": "Send queue status and runtime control.",
    },
    {
        "name": "Health",
        "description": "Liveness and backend reachability checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags metadata."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
