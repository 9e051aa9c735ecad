"""
Module: images.cropper

Purpose:
    Geometry and pixel operations for fitting a photo into a slot box.
    Covers both fit modes, quarter-turn rotation, and the confirmed
    crop used by the original-aspect custom family.

Key Functions:
    - rotate_quarter(): Rotate clockwise by 0/90/180/270 degrees
    - cover_box(): Centred source region that covers a target aspect
    - compute_cover_crop(): Normalized CropBox for a slot box
    - apply_crop(): Resolve a CropBox against a bitmap
    - fit_into_box(): Fill or cover a bitmap into an exact size
    - reduce_for_box(): Downsample so the bitmap is no larger than needed

Dependencies:
    - PIL: Image manipulation
    - core.models: CropBox, FitMode

Used By:
    - editor.controller: confirm_crop
    - images.loader: Memory-bounded decode
    - output.rasterizer: Slot composition
"""

from __future__ import annotations

from typing import Tuple

from PIL import Image

from photosheet.core.models import CropBox, FitMode, VALID_ROTATIONS

_TRANSPOSE_CLOCKWISE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def rotate_quarter(image: Image.Image, rotation: int) -> Image.Image:
    """
    Rotate an image clockwise by a quarter-turn multiple.

    Raises:
        ValueError: If rotation is not 0, 90, 180 or 270
    """
    if rotation not in VALID_ROTATIONS:
        raise ValueError(f"Unsupported rotation: {rotation}")
    if rotation == 0:
        return image
    return image.transpose(_TRANSPOSE_CLOCKWISE[rotation])


def rotated_size(size: Tuple[int, int], rotation: int) -> Tuple[int, int]:
    """Size of a bitmap after a quarter-turn rotation."""
    width, height = size
    if rotation in (90, 270):
        return height, width
    return width, height


def cover_box(
    source_size: Tuple[float, float],
    target_size: Tuple[float, float],
) -> Tuple[float, float, float, float]:
    """
    Centred region of the source that covers the target aspect.

    The source is scaled by max(tw/sw, th/sh); the overflow on the
    long axis is cropped equally from both sides.

    Args:
        source_size: (width, height) of the source bitmap
        target_size: (width, height) of the box to fill

    Returns:
        (left, top, right, bottom) in source pixels

    Example:
        >>> cover_box((400, 200), (100, 100))
        (100.0, 0.0, 300.0, 200.0)
    """
    sw, sh = source_size
    tw, th = target_size
    if sw <= 0 or sh <= 0 or tw <= 0 or th <= 0:
        raise ValueError(f"Sizes must be positive: {source_size}, {target_size}")
    factor = max(tw / sw, th / sh)
    crop_w = tw / factor
    crop_h = th / factor
    left = (sw - crop_w) / 2
    top = (sh - crop_h) / 2
    return left, top, left + crop_w, top + crop_h


def compute_cover_crop(
    source_size: Tuple[int, int],
    box_size: Tuple[float, float],
    *,
    rotation: int = 0,
    scale: float = 1.0,
) -> CropBox:
    """
    Normalized crop of the rotated source matching what the slot shows.

    The region is the cover crop for the box aspect, narrowed towards
    the centre when the user zoomed in (scale > 1). It is expressed as
    fractions of the rotated source so it can be re-applied to a decode
    of any resolution.

    Args:
        source_size: (width, height) of the unrotated source
        box_size: (width, height) of the slot's image box on screen
        rotation: Clockwise rotation applied before cropping
        scale: User zoom at confirmation time

    Returns:
        CropBox relative to the rotated source
    """
    rw, rh = rotated_size(source_size, rotation)
    left, top, right, bottom = cover_box((rw, rh), box_size)
    zoom = max(scale, 1.0)
    if zoom > 1.0:
        cx, cy = (left + right) / 2, (top + bottom) / 2
        half_w = (right - left) / (2 * zoom)
        half_h = (bottom - top) / (2 * zoom)
        left, right = cx - half_w, cx + half_w
        top, bottom = cy - half_h, cy + half_h
    return CropBox(
        left=max(0.0, left / rw),
        top=max(0.0, top / rh),
        right=min(1.0, right / rw),
        bottom=min(1.0, bottom / rh),
        rotation=rotation,
    )


def apply_crop(image: Image.Image, crop: CropBox) -> Image.Image:
    """Rotate by the crop's rotation, then cut out the crop region."""
    rotated = rotate_quarter(image, crop.rotation)
    return rotated.crop(crop.to_pixels(rotated.size))


def fit_into_box(
    image: Image.Image,
    box_size: Tuple[int, int],
    fit_mode: FitMode,
) -> Image.Image:
    """
    Produce a bitmap of exactly box_size from the image.

    FILL stretches to the box (aspect may change). COVER keeps the
    aspect and crops the overflow around the centre.
    """
    width, height = max(1, box_size[0]), max(1, box_size[1])
    if fit_mode is FitMode.COVER:
        left, top, right, bottom = cover_box(image.size, (width, height))
        return image.resize(
            (width, height),
            Image.Resampling.LANCZOS,
            box=(left, top, right, bottom),
        )
    return image.resize((width, height), Image.Resampling.LANCZOS)


def reduce_for_box(image: Image.Image, needed_min_side: int) -> Image.Image:
    """
    Downsample so the shorter side is no larger than needed_min_side.

    Never upsamples; returns the image unchanged when already small
    enough.
    """
    if needed_min_side <= 0:
        return image
    width, height = image.size
    short_side = min(width, height)
    if short_side <= needed_min_side:
        return image
    factor = needed_min_side / short_side
    new_size = (max(1, round(width * factor)), max(1, round(height * factor)))
    return image.resize(new_size, Image.Resampling.LANCZOS)
