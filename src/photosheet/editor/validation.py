"""
Module: editor.validation

Purpose:
    Upload checks applied before an image reaches a slot: a size
    ceiling and an allow-list of encodings. The encoding is sniffed from
    the bytes with Pillow and the stream is verified, so truncated or
    corrupt files are refused at upload time. The filename extension is
    not trusted.

Key Functions:
    - validate_image_upload(): Returns the sniffed MIME type or raises

Key Classes:
    - ImageValidationError: Rejected upload (user-facing message)

Dependencies:
    - PIL: Format sniffing

Used By:
    - editor.controller: assign_image
    - manifest: Image files referenced by a manifest
"""

from __future__ import annotations

import io
import struct

from PIL import Image, UnidentifiedImageError

MAX_UPLOAD_BYTES = 15 * 1024 * 1024

ALLOWED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


class ImageValidationError(Exception):
    """Upload rejected; message is shown to the user."""
    pass


def validate_image_upload(data: bytes, filename: str = "") -> str:
    """
    Check an upload against the size ceiling and encoding allow-list.

    Args:
        data: Encoded image bytes
        filename: Original name, used in messages only

    Returns:
        MIME type of the sniffed encoding

    Raises:
        ImageValidationError: If too large, empty, corrupt, too many pixels,
            or not JPEG/PNG/WEBP

    Example:
        >>> validate_image_upload(png_bytes, "site.png")
        'image/png'
    """
    label = filename or "The file"
    if not data:
        raise ImageValidationError(f"{label} is empty.")
    if len(data) > MAX_UPLOAD_BYTES:
        size_mb = len(data) / (1024 * 1024)
        raise ImageValidationError(
            f"{label} is {size_mb:.1f} MB; images must be 15 MB or smaller."
        )
    try:
        with Image.open(io.BytesIO(data)) as source:
            image_format = source.format
            source.verify()
    except Image.DecompressionBombError as e:
        raise ImageValidationError(f"{label} has too many pixels to process.") from e
    except (UnidentifiedImageError, OSError, SyntaxError, EOFError, struct.error) as e:
        raise ImageValidationError(f"{label} is not a supported image.") from e

    if image_format not in ALLOWED_FORMATS:
        raise ImageValidationError(
            f"{label} is {image_format}; only JPEG, PNG and WEBP images are supported."
        )
    return ALLOWED_FORMATS[image_format]
