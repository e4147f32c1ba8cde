"""Helpers to keep recipient identifiers out of logs in full."""

from __future__ import annotations


def mask_recipient(address: str, *, is_group: bool = False) -> str:
    """Shorten a recipient identifier for log output.

    Examples:
        >>> mask_recipient("+15551234567")
        '+15551...'
        >>> mask_recipient("abcdefghijkl", is_group=True)
        'group:abcdefgh...'
    """
    if is_group:
        return f"group:{address[:8]}..."
    return f"{address[:6]}..."


def mask_sender(sender_id: str | None) -> str:
    """Render the configured sender for status output."""
    if not sender_id:
        return "not set"
    return f"{sender_id[:4]}..."
