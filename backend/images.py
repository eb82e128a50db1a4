"""
Validation and downsizing of user supplied images (message photos,
profile pictures) before they are written to object storage.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from backend.storage import StorageClient

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(
    r"^data:(image/[\w.+-]+)?(;[\w=-]+)*;base64,(.*)$", re.DOTALL
)
JPEG_QUALITY = 85
# Decoded size cap, checked before pixel data is loaded.
MAX_PIXELS = 40_000_000
TOO_MANY_PIXELS_MESSAGE = "Image dimensions are too large."


class ImageValidationError(ValueError):
    """Raised when an upload is not an acceptable image."""


@dataclass
class ProcessedImage:
    data: bytes
    content_type: str
    extension: str
    width: int
    height: int


def decode_data_url(data_url: str) -> bytes:
    """Decode a base64 `data:image/...` URL into raw bytes."""
    match = DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        raise ImageValidationError("Photo must be a base64 encoded image data URL.")
    try:
        return base64.b64decode(match.group(3), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageValidationError("Photo data is not valid base64.") from exc


def _has_transparency(img: Image.Image) -> bool:
    if img.mode in ("RGBA", "LA"):
        return True
    return img.mode == "P" and "transparency" in img.info


def process_image(data: bytes, *, max_bytes: int, max_dimension: int) -> ProcessedImage:
    """
    Check size and format, then shrink so the longer side is at most
    `max_dimension`. Images with transparency are kept as PNG, everything
    else is re-encoded as JPEG.
    """
    if not data:
        raise ImageValidationError("Image is empty.")
    if len(data) > max_bytes:
        raise ImageValidationError(
            f"Image is too large; the limit is {max_bytes // (1024 * 1024)}MB."
        )

    try:
        img = Image.open(io.BytesIO(data))
        if img.width * img.height > MAX_PIXELS:
            raise ImageValidationError(TOO_MANY_PIXELS_MESSAGE)
        img.load()
    except Image.DecompressionBombError as exc:
        raise ImageValidationError(TOO_MANY_PIXELS_MESSAGE) from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageValidationError("Please select an image file.") from exc

    img = ImageOps.exif_transpose(img)
    if max(img.size) > max_dimension:
        img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    out = io.BytesIO()
    if _has_transparency(img):
        if img.mode == "P":
            img = img.convert("RGBA")
        img.save(out, format="PNG", optimize=True)
        content_type, extension = "image/png", "png"
    else:
        img.convert("RGB").save(out, format="JPEG", quality=JPEG_QUALITY)
        content_type, extension = "image/jpeg", "jpg"

    return ProcessedImage(
        data=out.getvalue(),
        content_type=content_type,
        extension=extension,
        width=img.width,
        height=img.height,
    )


def store_image(
    storage: StorageClient,
    path_prefix: str,
    data: bytes,
    *,
    max_bytes: int,
    max_dimension: int,
) -> str:
    """Process an image and upload it; returns the storage path."""
    processed = process_image(data, max_bytes=max_bytes, max_dimension=max_dimension)
    path = f"{path_prefix}.{processed.extension}"
    storage.upload_bytes(path, processed.data, content_type=processed.content_type)
    logger.info(
        "Stored image %s (%dx%d, %d bytes)",
        path,
        processed.width,
        processed.height,
        len(processed.data),
    )
    return path
