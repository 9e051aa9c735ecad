"""
Images Package

Transient image handles, async decoding and crop/fit geometry.
"""

from .handles import HandleRevokedError, ImageHandleRegistry
from .cropper import (
    apply_crop,
    compute_cover_crop,
    cover_box,
    fit_into_box,
    reduce_for_box,
    rotate_quarter,
    rotated_size,
)
from .loader import AssetLoadError, AssetLoader, LoadedAsset, PillowAssetLoader

__all__ = [
    "HandleRevokedError",
    "ImageHandleRegistry",
    "apply_crop",
    "compute_cover_crop",
    "cover_box",
    "fit_into_box",
    "reduce_for_box",
    "rotate_quarter",
    "rotated_size",
    "AssetLoadError",
    "AssetLoader",
    "LoadedAsset",
    "PillowAssetLoader",
]
