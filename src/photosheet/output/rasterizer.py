"""
Module: output.rasterizer

Purpose:
    Rasterize a PageView into a bitmap at a given scale factor.
    Draws the page frame, the metadata block, every slot (photo,
    border, description band) and blank spacers, using the same font
    metrics the projection wrapped text with.

Key Functions:
    - render_page(): PageView -> PIL Image
    - compose_photo(): Fit, rotate, zoom and clip one photo into its box

Dependencies:
    - PIL: Drawing
    - images.cropper: Fit modes, rotation, confirmed crops
    - layout.text: Fonts

Used By:
    - export.pipeline: CAPTURING phase
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Tuple

from PIL import Image, ImageDraw

from photosheet.core.models import CropBox, FitMode, TextAlign
from photosheet.images import apply_crop, fit_into_box, rotate_quarter
from photosheet.layout import BorderStyle, PageView, Rect, SlotView, TextLine
from photosheet.layout.text import load_font

logger = logging.getLogger(__name__)

# Colours
PAGE_BACKGROUND = "white"
FRAME_COLOR = "black"
PHOTO_BACKGROUND = "#f3f4f6"
PHOTO_BORDER_COLOR = "black"
EMPTY_PRINT_BORDER_COLOR = "#d1d5db"
EMPTY_EDIT_BORDER_COLOR = "#9ca3af"
DESCRIPTION_BORDER_COLOR = "#e5e7eb"

DASH_PX = 4
DASH_GAP_PX = 4

_ANCHORS = {
    TextAlign.START: "lm",
    TextAlign.CENTER: "mm",
    TextAlign.END: "rm",
}


class RasterizeError(Exception):
    """A page could not be drawn."""
    pass


def render_page(
    view: PageView,
    assets: Mapping[str, Image.Image],
    scale: float,
) -> Image.Image:
    """
    Draw a page view into an RGB bitmap.

    Args:
        view: Projected page (CSS px)
        assets: Decoded bitmaps by handle id; slots whose handle is
            missing are drawn with their background and border only
        scale: Output pixels per CSS px

    Returns:
        RGB image of size (view.width * scale, view.height * scale)

    Raises:
        RasterizeError: If scale is not positive
    """
    if scale <= 0:
        raise RasterizeError(f"Scale must be positive: {scale}")

    size = (max(1, round(view.width * scale)), max(1, round(view.height * scale)))
    canvas = Image.new("RGB", size, PAGE_BACKGROUND)
    draw = ImageDraw.Draw(canvas)

    frame_px = max(1, round(view.frame_width * scale))
    draw.rectangle(view.frame.scaled(scale), outline=FRAME_COLOR, width=frame_px)

    for line in view.metadata_lines:
        _draw_text_line(draw, line, scale)

    for slot_view in view.slots:
        _draw_slot(canvas, draw, slot_view, assets, scale)

    logger.debug(
        f"Rasterized page {view.page_id} at {scale:.2f}x -> {size[0]}x{size[1]}"
    )
    return canvas


def _draw_text_line(draw: ImageDraw.ImageDraw, line: TextLine, scale: float) -> None:
    if not line.text:
        return
    font = load_font(line.font_family, round(line.font_px * scale), line.bold)
    left, top, right, bottom = line.box.scaled(scale)
    y = (top + bottom) / 2
    if line.align is TextAlign.CENTER:
        x = (left + right) / 2
    elif line.align is TextAlign.END:
        x = right
    else:
        x = left
    draw.text((x, y), line.text, fill=line.color, font=font, anchor=_ANCHORS[line.align])


def _draw_slot(
    canvas: Image.Image,
    draw: ImageDraw.ImageDraw,
    slot_view: SlotView,
    assets: Mapping[str, Image.Image],
    scale: float,
) -> None:
    cell = slot_view.cell.scaled(scale)
    stroke = max(1, round(scale))

    if slot_view.image is not None:
        image_box = slot_view.image_box.scaled(scale)
        draw.rectangle(cell, fill=PHOTO_BACKGROUND)
        source = assets.get(slot_view.image.handle_id)
        if source is not None:
            tile = compose_photo(
                source,
                (image_box[2] - image_box[0], image_box[3] - image_box[1]),
                fit_mode=slot_view.fit_mode,
                scale=slot_view.scale,
                rotation=slot_view.rotation,
                crop=slot_view.confirmed_crop,
            )
            canvas.paste(tile, image_box[:2])
        else:
            logger.debug(f"No bitmap for slot {slot_view.slot_id}, drawing frame only")
    elif slot_view.border is BorderStyle.SOLID_NEUTRAL:
        draw.rectangle(cell, fill=PAGE_BACKGROUND)

    if slot_view.description_box is not None:
        _draw_description(draw, slot_view, scale)

    if slot_view.border is BorderStyle.SOLID_NEUTRAL:
        draw.rectangle(cell, outline=EMPTY_PRINT_BORDER_COLOR, width=stroke)
    elif slot_view.border is BorderStyle.DASHED_GRAY:
        _dashed_rectangle(draw, cell, EMPTY_EDIT_BORDER_COLOR, stroke, scale)
    else:
        _dashed_rectangle(draw, cell, PHOTO_BORDER_COLOR, stroke, scale)


def _draw_description(draw: ImageDraw.ImageDraw, slot_view: SlotView, scale: float) -> None:
    band = slot_view.description_box.scaled(scale)
    draw.rectangle(band, fill=PAGE_BACKGROUND)
    draw.line(
        [(band[0], band[1]), (band[2], band[1])],
        fill=DESCRIPTION_BORDER_COLOR,
        width=max(1, round(scale)),
    )
    for line in slot_view.description_lines:
        _draw_text_line(draw, line, scale)


def _dashed_rectangle(
    draw: ImageDraw.ImageDraw,
    box: Tuple[int, int, int, int],
    color: str,
    width: int,
    scale: float,
) -> None:
    left, top, right, bottom = box
    right -= 1
    bottom -= 1
    dash = max(1, round(DASH_PX * scale))
    gap = max(1, round(DASH_GAP_PX * scale))
    for start in range(left, right + 1, dash + gap):
        end = min(start + dash - 1, right)
        draw.rectangle((start, top, end, top + width - 1), fill=color)
        draw.rectangle((start, bottom - width + 1, end, bottom), fill=color)
    for start in range(top, bottom + 1, dash + gap):
        end = min(start + dash - 1, bottom)
        draw.rectangle((left, start, left + width - 1, end), fill=color)
        draw.rectangle((right - width + 1, start, right, end), fill=color)


def compose_photo(
    source: Image.Image,
    box_size: Tuple[int, int],
    *,
    fit_mode: FitMode = FitMode.FILL,
    scale: float = 1.0,
    rotation: int = 0,
    crop: Optional[CropBox] = None,
) -> Image.Image:
    """
    Render one photo into a box-sized tile.

    The photo is fitted to the box (fill or cover), rotated about the
    centre, zoomed by scale about the centre and clipped to the box.
    A confirmed crop replaces fitting and rotation: the crop region of
    the rotated source is stretched to the box, and only zoom-out is
    applied on top of it (zoom-in is already part of the crop).

    Args:
        source: Decoded photo
        box_size: Tile size in output pixels
        fit_mode: FILL or COVER
        scale: User zoom
        rotation: Clockwise quarter-turn rotation
        crop: Confirmed crop (original-ratio family)

    Returns:
        RGB tile of exactly box_size
    """
    width, height = max(1, box_size[0]), max(1, box_size[1])
    tile = Image.new("RGB", (width, height), PHOTO_BACKGROUND)

    if crop is not None:
        placed = apply_crop(source, crop).resize((width, height), Image.Resampling.LANCZOS)
        zoom = min(scale, 1.0)
    else:
        placed = rotate_quarter(fit_into_box(source, (width, height), fit_mode), rotation)
        zoom = scale

    out_w = placed.width * zoom
    out_h = placed.height * zoom
    offset_x = (width - out_w) / 2
    offset_y = (height - out_h) / 2

    visible = Rect(
        max(0.0, offset_x),
        max(0.0, offset_y),
        min(float(width), offset_x + out_w) - max(0.0, offset_x),
        min(float(height), offset_y + out_h) - max(0.0, offset_y),
    )
    target = (round(visible.width), round(visible.height))
    if target[0] <= 0 or target[1] <= 0:
        return tile

    source_box = (
        max(0.0, (visible.x - offset_x) / zoom),
        max(0.0, (visible.y - offset_y) / zoom),
        min(float(placed.width), (visible.right - offset_x) / zoom),
        min(float(placed.height), (visible.bottom - offset_y) / zoom),
    )
    piece = placed.resize(target, Image.Resampling.LANCZOS, box=source_box)
    position = (round(visible.x), round(visible.y))
    if piece.mode == "RGBA":
        tile.paste(piece, position, piece)
    else:
        tile.paste(piece.convert("RGB"), position)
    return tile
