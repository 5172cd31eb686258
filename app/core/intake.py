# app/core/intake.py
import asyncio
import logging
from typing import Optional

from fastapi import UploadFile

from app.core.config import Settings
from app.core.errors import (
    UNSUPPORTED_FORMAT_MESSAGE,
    MediaTooLargeError,
    ReadError,
    UnsupportedMediaError,
)
from app.core.schemas import MediaFile, MediaType
from app.detectors.image import normalize_content_type, prepare_image

logger = logging.getLogger(__name__)


def classify_media_type(content_type: Optional[str]) -> MediaType:
    """Map a declared MIME type onto IMAGE/VIDEO, rejecting everything else."""
    normalized = normalize_content_type(content_type)
    if normalized.startswith("image/"):
        return MediaType.IMAGE
    if normalized.startswith("video/"):
        return MediaType.VIDEO
    raise UnsupportedMediaError(UNSUPPORTED_FORMAT_MESSAGE)


def validate_upload(content_type: Optional[str], size: int, max_bytes: int) -> MediaType:
    media_type = classify_media_type(content_type)
    if size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise MediaTooLargeError(
            f"File too large. Please upload files under {limit_mb}MB."
        )
    return media_type


async def read_upload(upload: UploadFile, settings: Settings) -> MediaFile:
    """
    Validate and read an uploaded file into a MediaFile.

    The type is checked before any bytes are read; the size is checked
    against the declared size first and against what was actually read.
    Images the analysis service cannot take are converted to PNG here, or
    rejected as unsupported when Pillow cannot decode them.
    """
    classify_media_type(upload.content_type)
    if upload.size is not None:
        validate_upload(upload.content_type, upload.size, settings.MAX_UPLOAD_BYTES)

    try:
        # one byte over the limit is enough to know it is too large
        data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
    except OSError as e:
        logger.error("[MediaForensics] Failed to read upload %r: %s", upload.filename, e)
        raise ReadError("Could not read the uploaded file.") from e

    media_type = validate_upload(upload.content_type, len(data), settings.MAX_UPLOAD_BYTES)
    if not data:
        raise ReadError("The uploaded file is empty.")

    content_type = normalize_content_type(upload.content_type)
    if media_type is MediaType.IMAGE:
        data, content_type = await asyncio.to_thread(prepare_image, data, content_type)

    logger.info(
        "[MediaForensics] Accepted %s upload %r (%d bytes, %s)",
        media_type.value, upload.filename, len(data), content_type,
    )
    return MediaFile(
        data=data,
        filename=upload.filename or "upload",
        content_type=content_type,
        media_type=media_type,
    )
