"""
Module: images

Purpose:
    Image reference and crop models held by slots. An ImageRef is an
    opaque handle; its bytes live in the ImageHandleRegistry and must
    be revoked explicitly when the slot lets go of it.

Key Classes:
    - ImageRef: Handle + displayable URL for an uploaded photo
    - CropBox: Normalized cover-crop region of a rotated source bitmap

Dependencies:
    - dataclasses (std)

Used By:
    - core.models.document: Slot.image, Slot.confirmed_crop
    - images.handles: Creates ImageRefs
    - images.cropper: Computes CropBoxes
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ImageRef:
    """
    Reference to a decoded-on-demand photo.

    Attributes:
        handle_id: Registry key for the image bytes
        url: Displayable URL ("blob:photosheet/<handle_id>")
        filename: Original filename
        mime_type: Sniffed MIME type (image/jpeg, image/png, image/webp)
        size_bytes: Size of the encoded upload
    """

    handle_id: str
    url: str
    filename: str
    mime_type: str
    size_bytes: int


@dataclass(frozen=True, slots=True)
class CropBox:
    """
    Crop region in normalized coordinates of the rotated source.

    The region is [left, right) x [top, bottom) with all values in
    [0, 1], so the same box applies to any decode resolution of the
    same photo.

    Attributes:
        left: Left edge (fraction of rotated width)
        top: Top edge (fraction of rotated height)
        right: Right edge
        bottom: Bottom edge
        rotation: Rotation (degrees) the source was turned by first

    Invariants:
        - 0 <= left < right <= 1
        - 0 <= top < bottom <= 1
    """

    left: float
    top: float
    right: float
    bottom: float
    rotation: int = 0

    def __post_init__(self) -> None:
        if not (0.0 <= self.left < self.right <= 1.0):
            raise ValueError(f"Invalid horizontal crop: {self.left}..{self.right}")
        if not (0.0 <= self.top < self.bottom <= 1.0):
            raise ValueError(f"Invalid vertical crop: {self.top}..{self.bottom}")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def to_pixels(self, size: tuple[int, int]) -> tuple[int, int, int, int]:
        """
        Resolve this box against a concrete (rotated) bitmap size.

        Returns:
            (left, top, right, bottom) pixel box, at least 1px each way
        """
        width, height = size
        left = min(int(round(self.left * width)), width - 1)
        top = min(int(round(self.top * height)), height - 1)
        right = max(left + 1, int(round(self.right * width)))
        bottom = max(top + 1, int(round(self.bottom * height)))
        return left, top, min(right, width), min(bottom, height)
