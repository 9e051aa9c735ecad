"""
Module: export.config

Purpose:
    Export configuration: quality tiers, output formats and the options
    one export run is started with.

Key Classes:
    - QualityTier: low / standard / high, each with a fixed base scale
      and JPEG quality
    - ExportFormat: pdf / jpeg, with MIME descriptors
    - ExportOptions: Immutable options for one run

Key Functions:
    - capture_scale(): base_scale(quality) * device_pixel_ratio

Dependencies:
    - dataclasses (std)

Used By:
    - export.pipeline
    - settings: Persisted defaults
    - cli: Argument parsing
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_ASSET_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_SETTLE_PASSES = 8


class QualityTier(Enum):
    """
    Named export resolution preset.

    Attributes:
        LOW: 2x base scale, JPEG quality 60
        STANDARD: 3x base scale, JPEG quality 70
        HIGH: 4x base scale, JPEG quality 90
    """

    LOW = "low"
    STANDARD = "standard"
    HIGH = "high"

    @property
    def base_scale(self) -> float:
        return _BASE_SCALES[self]

    @property
    def jpeg_quality(self) -> int:
        return _JPEG_QUALITIES[self]


_BASE_SCALES = {
    QualityTier.LOW: 2.0,
    QualityTier.STANDARD: 3.0,
    QualityTier.HIGH: 4.0,
}

_JPEG_QUALITIES = {
    QualityTier.LOW: 60,
    QualityTier.STANDARD: 70,
    QualityTier.HIGH: 90,
}


@dataclass(frozen=True)
class MimeDescriptor:
    """What a save dialog needs to know about a file type."""

    mime_type: str
    extension: str
    description: str


class ExportFormat(Enum):
    PDF = "pdf"
    JPEG = "jpeg"

    @property
    def mime(self) -> MimeDescriptor:
        if self is ExportFormat.PDF:
            return MimeDescriptor("application/pdf", "pdf", "PDF document")
        return MimeDescriptor("image/jpeg", "jpg", "JPEG image")

    @property
    def extension(self) -> str:
        return self.mime.extension


def capture_scale(quality: QualityTier, device_pixel_ratio: float) -> float:
    """
    Rasterization scale for a run.

    Pure: the same inputs always give the same scale.

    Example:
        >>> capture_scale(QualityTier.STANDARD, 2.0)
        6.0
    """
    if device_pixel_ratio <= 0:
        raise ValueError(f"device_pixel_ratio must be positive: {device_pixel_ratio}")
    return quality.base_scale * device_pixel_ratio


@dataclass(frozen=True)
class ExportOptions:
    """
    Options for one export run (immutable).

    Attributes:
        format: PDF or JPEG
        quality: Quality tier
        device_pixel_ratio: Pixel density of the capturing device
        asset_timeout: Seconds to wait for each image to decode
        max_settle_passes: Layout passes tried before giving up on
            settling (the last pass is used)

    Example:
        >>> ExportOptions(format=ExportFormat.JPEG).scale
        3.0
    """

    format: ExportFormat = ExportFormat.PDF
    quality: QualityTier = QualityTier.STANDARD
    device_pixel_ratio: float = 1.0
    asset_timeout: float = DEFAULT_ASSET_TIMEOUT_SECONDS
    max_settle_passes: int = DEFAULT_MAX_SETTLE_PASSES

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.device_pixel_ratio <= 0:
            raise ValueError(f"device_pixel_ratio must be positive: {self.device_pixel_ratio}")
        if self.asset_timeout <= 0:
            raise ValueError(f"asset_timeout must be positive: {self.asset_timeout}")
        if self.max_settle_passes < 2:
            raise ValueError("max_settle_passes must allow two comparable passes")

    @property
    def scale(self) -> float:
        return capture_scale(self.quality, self.device_pixel_ratio)
