"""Upload handling for media attached to send requests."""
from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path

from fastapi import HTTPException, UploadFile
from signal_gateway.core.config import settings

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=413,
        detail=f"File too large. Maximum size is {settings.app.max_upload_size_mb}MB",
    )


def _unique_upload_path(original_name: str | None) -> Path:
    upload_dir = Path(settings.app.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(original_name or "").suffix.lower()
    return upload_dir / f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"


async def save_upload_file_limited(file: UploadFile) -> Path:
    """Stream an uploaded file to the upload directory enforcing the size limit.

    Uses file.size if available (multipart headers), falls back to chunked
    reading with enforcement. The original extension is kept so the
    attachment MIME type can be derived from it.

    Args:
        file: FastAPI upload file instance.

    Returns:
        Path of the stored file. The caller removes it once sent.

    Raises:
        HTTPException: 413 if the file exceeds the configured size limit.
    """
    max_bytes = settings.app.max_upload_size_mb * 1024 * 1024

    file_size = getattr(file, "size", None)
    if file_size is not None and file_size > max_bytes:
        logger.warning(
            "upload.rejected_by_header",
            extra={"file_size": file_size, "max_bytes": max_bytes},
        )
        raise _too_large()

    target = _unique_upload_path(file.filename)
    size = 0

    try:
        with target.open("wb") as out:
            while True:
                chunk = await file.read(_CHUNK_SIZE)
                if not chunk:
                    break

                size += len(chunk)
                if size > max_bytes:
                    logger.warning(
                        "upload.rejected_by_chunked_read",
                        extra={"size": size, "max_bytes": max_bytes},
                    )
                    raise _too_large()
                out.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise

    logger.info(
        "upload.stored",
        extra={"file_name": target.name, "size": size},
    )
    return target


def discard_upload(path: Path | None) -> None:
    """Remove a stored upload, ignoring files that are already gone."""
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("upload.cleanup_failed", extra={"file_name": path.name})
