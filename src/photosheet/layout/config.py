"""
Module: layout.config

Purpose:
    Page geometry for A4 sheets in CSS pixels (96 DPI).
    Defines page size per orientation, frame, paddings and the
    typography of the metadata block and description band.

Key Classes:
    - PageGeometry: Immutable page geometry

Key Functions:
    - mm_to_px(): Millimetres to CSS pixels
    - pt_to_px(): Points to CSS pixels

Dependencies:
    - dataclasses (std)
    - core.models.templates: Orientation

Used By:
    - layout.geometry: Gap values
    - layout.projection: Page boxes
    - export.offscreen: Container width
"""

from __future__ import annotations

from dataclasses import dataclass

from photosheet.core.models import Orientation

CSS_DPI = 96
MM_TO_PX = CSS_DPI / 25.4

# A4 at 96 DPI, rounded to whole pixels
A4_SHORT_PX = 794
A4_LONG_PX = 1123


def mm_to_px(mm: float) -> float:
    """Convert millimetres to CSS pixels."""
    return mm * MM_TO_PX


def pt_to_px(pt: float) -> float:
    """Convert typographic points to CSS pixels."""
    return pt * CSS_DPI / 72.0


@dataclass(frozen=True)
class PageGeometry:
    """
    Geometry of one printable page (immutable).

    The page is laid out as: outer padding → black frame → inner
    padding → metadata block → gap → photo grid.

    Attributes:
        orientation: Portrait or landscape
        page_width: Page width in CSS px
        page_height: Page height in CSS px
        page_padding: Space between page edge and frame (px)
        frame_width: Frame stroke width (px)
        frame_padding: Space between frame and content (px)
        metadata_gap: Space below the metadata block (px)
        metadata_line_height: Line-height multiplier for metadata lines
        secondary_font_px: Font size of the project/sub-project/manager lines
        metadata_color: Metadata text colour
        description_font_px: Description text size
        description_line_height: Description line-height multiplier
        description_padding_y: Band vertical padding (px)
        description_padding_x: Band horizontal padding (px)
        image_min_height: Smallest image area kept above a description band

    Example:
        >>> geometry = PageGeometry.for_orientation(Orientation.PORTRAIT)
        >>> geometry.page_width, geometry.page_height
        (794, 1123)
    """

    orientation: Orientation = Orientation.PORTRAIT
    page_width: int = A4_SHORT_PX
    page_height: int = A4_LONG_PX

    # Frame
    page_padding: float = mm_to_px(20)
    frame_width: int = 2
    frame_padding: float = mm_to_px(8)

    # Metadata block
    metadata_gap: float = mm_to_px(6)
    metadata_line_height: float = 1.4
    secondary_font_px: float = 14.0
    metadata_color: str = "#333333"

    # Description band
    description_font_px: float = 13.0
    description_line_height: float = 1.2
    description_padding_y: float = 2.0
    description_padding_x: float = 4.0
    description_color: str = "#374151"
    description_border_color: str = "#e5e7eb"
    image_min_height: float = 100.0

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.page_width <= 0:
            raise ValueError(f"page_width must be positive: {self.page_width}")
        if self.page_height <= 0:
            raise ValueError(f"page_height must be positive: {self.page_height}")
        if self.content_width <= 0:
            raise ValueError("Paddings exceed page width")
        if self.content_height <= 0:
            raise ValueError("Paddings exceed page height")

    @classmethod
    def for_orientation(cls, orientation: Orientation) -> "PageGeometry":
        """A4 geometry for the given orientation."""
        if orientation is Orientation.LANDSCAPE:
            return cls(orientation=orientation, page_width=A4_LONG_PX, page_height=A4_SHORT_PX)
        return cls(orientation=orientation, page_width=A4_SHORT_PX, page_height=A4_LONG_PX)

    @property
    def content_inset(self) -> float:
        """Distance from page edge to content edge."""
        return self.page_padding + self.frame_width + self.frame_padding

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.content_inset

    @property
    def content_height(self) -> float:
        return self.page_height - 2 * self.content_inset

    @property
    def description_line_px(self) -> float:
        """Height of one description text line."""
        return self.description_font_px * self.description_line_height
