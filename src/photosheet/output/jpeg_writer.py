"""
Module: output.jpeg_writer

Purpose:
    JPEG encoding of captured pages. Pages are encoded right after they
    are captured so only one full-resolution bitmap is alive at a time.

Key Functions:
    - encode_jpeg(): PIL Image -> JPEG bytes

Key Classes:
    - EncodedPage: JPEG bytes + pixel size for one page

Dependencies:
    - PIL: Encoding

Used By:
    - export.pipeline: CAPTURING and COMPOSING
    - output.pdf_writer: Page images
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Tuple

from PIL import Image


@dataclass(frozen=True)
class EncodedPage:
    """
    One captured page, already JPEG-encoded.

    Attributes:
        page_number: 1-based page number in the document
        data: JPEG bytes
        size: (width, height) in pixels
    """

    page_number: int
    data: bytes
    size: Tuple[int, int]


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """
    Encode an image as baseline JPEG.

    Args:
        image: Page bitmap (converted to RGB if needed)
        quality: JPEG quality 1-95

    Returns:
        JPEG bytes
    """
    if not 1 <= quality <= 95:
        raise ValueError(f"JPEG quality out of range: {quality}")
    if image.mode != "RGB":
        image = image.convert("RGB")
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()
