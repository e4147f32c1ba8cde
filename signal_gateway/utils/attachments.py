"""Attachment encoding for the messaging backend.

The backend accepts attachments inline as base64 data URIs. The MIME type is
derived from the file extension using a fixed table; unknown extensions are
sent as generic binary.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path

from signal_gateway.core.errors import MediaNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".wav": "audio/wav",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
}


def guess_mime_type(path: str | Path) -> str:
    """Return the MIME type for a path based on its extension."""
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def encode_attachment(path: str | Path) -> str:
    """Read a local file and encode it as a data URI attachment.

    Args:
        path: Filesystem path of the media to attach.

    Returns:
        String of the form ``data:<mime>;base64,<payload>``.

    Raises:
        MediaNotFoundError: If the path is not an existing, readable file.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise MediaNotFoundError(
            code="media_not_found",
            message=f"Media file not found: {file_path}",
            details={"path": str(file_path)},
        )

    try:
        raw = file_path.read_bytes()
    except OSError as exc:
        raise MediaNotFoundError(
            code="media_unreadable",
            message=f"Media file could not be read: {file_path}",
            details={"path": str(file_path)},
        ) from exc

    mime_type = guess_mime_type(file_path)
    payload = base64.b64encode(raw).decode("ascii")

    logger.debug(
        "attachment.encoded",
        extra={
            "file_name": file_path.name,
            "mime_type": mime_type,
            "size_kb": round(len(raw) / 1024),
        },
    )

    return f"data:{mime_type};base64,{payload}"
