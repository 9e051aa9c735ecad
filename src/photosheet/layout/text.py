"""
Module: layout.text

Purpose:
    Font loading and text wrapping shared by projection and
    rasterization, so line breaks measured during layout are the same
    ones drawn into the bitmap.

Key Functions:
    - load_font(): TrueType font for a family/size/weight with fallbacks
    - wrap_text(): Greedy word wrap against a pixel width

Dependencies:
    - PIL.ImageFont: Font metrics

Used By:
    - layout.projection: Description band heights
    - output.rasterizer: Text drawing
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

from PIL import ImageFont

logger = logging.getLogger(__name__)

_GENERIC_FAMILIES = {
    "sans-serif": (
        ("DejaVuSans.ttf", "arial.ttf", "Arial.ttf", "LiberationSans-Regular.ttf"),
        ("DejaVuSans-Bold.ttf", "arialbd.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf"),
    ),
    "serif": (
        ("DejaVuSerif.ttf", "times.ttf", "Times New Roman.ttf", "LiberationSerif-Regular.ttf"),
        ("DejaVuSerif-Bold.ttf", "timesbd.ttf", "Times New Roman Bold.ttf", "LiberationSerif-Bold.ttf"),
    ),
    "monospace": (
        ("DejaVuSansMono.ttf", "cour.ttf", "Courier New.ttf", "LiberationMono-Regular.ttf"),
        ("DejaVuSansMono-Bold.ttf", "courbd.ttf", "Courier New Bold.ttf", "LiberationMono-Bold.ttf"),
    ),
}


def _candidates(family: str, bold: bool) -> List[str]:
    key = (family or "").strip().lower()
    if key in _GENERIC_FAMILIES:
        regular, bold_faces = _GENERIC_FAMILIES[key]
        return list(bold_faces + regular) if bold else list(regular)

    compact = family.strip().replace(" ", "")
    names = []
    if bold:
        names += [f"{compact}-Bold.ttf", f"{family.strip()} Bold.ttf"]
    names += [f"{compact}.ttf", f"{compact}-Regular.ttf", f"{family.strip()}.ttf"]
    # Unknown families fall back to the sans-serif faces
    return names + _candidates("sans-serif", bold)


@lru_cache(maxsize=64)
def load_font(family: str, size_px: int, bold: bool = False) -> ImageFont.FreeTypeFont:
    """
    Load a font for text rendering.

    Tries the family's TrueType faces, then common sans-serif faces,
    then Pillow's bundled default font.

    Args:
        family: Family name ("sans-serif", "serif", "monospace" or a face)
        size_px: Size in pixels (at the target raster scale)
        bold: Prefer a bold face

    Returns:
        Font object
    """
    size_px = max(1, int(size_px))
    for font_name in _candidates(family, bold):
        try:
            return ImageFont.truetype(font_name, size_px)
        except (IOError, OSError):
            continue

    logger.warning(f"Could not load TrueType font for {family!r}, using default")
    return ImageFont.load_default(size=size_px)


def wrap_text(text: str, font: ImageFont.FreeTypeFont, max_width: float) -> List[str]:
    """
    Break text into lines no wider than max_width.

    Explicit newlines are kept. Words wider than a line are split
    between characters.

    Example:
        >>> wrap_text("", font, 100)
        []
    """
    if not text:
        return []

    lines: List[str] = []
    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if font.getlength(candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            current = ""
            for char in word:
                if current and font.getlength(current + char) > max_width:
                    lines.append(current)
                    current = char
                else:
                    current += char
        lines.append(current)
    return lines
