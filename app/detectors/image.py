# app/detectors/image.py

import asyncio
import base64
import binascii
import io
import os
from typing import BinaryIO, Optional, Tuple, Union

from PIL import Image

from app.core.errors import (
    UNSUPPORTED_FORMAT_MESSAGE,
    MediaValidationError,
    ReadError,
    UnsupportedMediaError,
)
from app.core.schemas import EncodedFrame

ImageSource = Union[bytes, str, os.PathLike, BinaryIO]

# media types the analysis service accepts as-is
SERVICE_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

_TYPE_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
}


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lowercase a MIME type, drop its parameters and fold common aliases."""
    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    return _TYPE_ALIASES.get(normalized, normalized)


# -----------------------------
# READING
# -----------------------------
def _read_bytes(source: ImageSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as fh:
            return fh.read()
    return source.read()


def _strip_data_url_prefix(text: str) -> str:
    """
    Handles both full data URLs and raw base64 strings.
    """
    if text.startswith("data:") and "," in text:
        _, text = text.split(",", 1)
    return "".join(text.split())


# -----------------------------
# ENCODING
# -----------------------------
async def encode_image(source: ImageSource, content_type: str) -> EncodedFrame:
    """
    Read a still image in full and wrap it as a single base64 frame.

    The bytes are passed through untouched; only the transport encoding is
    applied. Raises ReadError if the source cannot be read or is empty.
    """
    try:
        payload = await asyncio.to_thread(_read_bytes, source)
    except OSError as e:
        raise ReadError(f"Could not read image: {e}") from e

    if not payload:
        raise ReadError("Could not read image: file is empty.")

    return EncodedFrame(
        data=base64.b64encode(payload).decode("ascii"),
        mime_type=content_type,
    )


def frame_from_data_url(data_url: str) -> EncodedFrame:
    """
    Turn a client-side frame (data URL or bare base64) into an EncodedFrame.

    Missing padding is restored; anything that still fails to decode is
    rejected as invalid input. Image types the analysis service does not
    accept are converted to PNG.
    """
    mime_type = "image/jpeg"
    if data_url.startswith("data:"):
        header = data_url[5:].split(",", 1)[0]
        declared = normalize_content_type(header)
        if declared:
            mime_type = declared

    b64data = _strip_data_url_prefix(data_url)
    missing_padding = len(b64data) % 4
    if missing_padding:
        b64data += "=" * (4 - missing_padding)

    try:
        raw = base64.b64decode(b64data, validate=True)
    except binascii.Error as e:
        raise MediaValidationError(f"Frame is not valid base64: {e}") from e
    if not raw:
        raise MediaValidationError("Frame is empty.")
    if not mime_type.startswith("image/"):
        raise MediaValidationError(f"Frame must be an image, got {mime_type}.")

    raw, mime_type = prepare_image(raw, mime_type)
    return EncodedFrame(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type)


# -----------------------------
# TRANSCODING
# -----------------------------
def transcode_to_png(data: bytes) -> bytes:
    """
    Re-encode an image Pillow can read (BMP, TIFF, ...) as PNG.

    Only the first frame of multi-frame images is kept. Raises
    UnsupportedMediaError when Pillow cannot decode the bytes.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode not in ("1", "L", "LA", "P", "RGB", "RGBA", "I"):
                img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
            buf = io.BytesIO()
            img.save(buf, format="PNG")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise UnsupportedMediaError(UNSUPPORTED_FORMAT_MESSAGE) from e
    return buf.getvalue()


def prepare_image(data: bytes, content_type: str) -> Tuple[bytes, str]:
    """Return the payload and media type to send, converting when needed."""
    content_type = normalize_content_type(content_type)
    if content_type in SERVICE_IMAGE_TYPES:
        return data, content_type
    return transcode_to_png(data), "image/png"
