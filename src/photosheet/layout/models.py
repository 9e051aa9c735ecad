"""
Module: layout.models

Purpose:
    Data models for page layout.
    Immutable dataclasses for grid layouts and projected page views.

Key Classes:
    - SlotOverride: Per-slot minimum height override
    - GridLayout: Output of the geometry engine
    - RenderMode: Interactive editing vs. print capture
    - Rect: Axis-aligned box in CSS px
    - TextLine: Positioned line of text
    - SlotView / PageView: Projected page ready for drawing

Dependencies:
    - dataclasses (std)
    - core.models: Slot fields carried into views

Used By:
    - layout.geometry: Creates GridLayouts
    - layout.projection: Creates PageViews
    - output.rasterizer: Draws PageViews
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from photosheet.core.models import CropBox, FitMode, ImageRef, TextAlign


@dataclass(frozen=True)
class SlotOverride:
    """Minimum height applied to one slot index, above the generic floor."""

    slot_index: int
    min_height: float


@dataclass(frozen=True)
class GridLayout:
    """
    Grid produced by layout() (immutable).

    Attributes:
        rows: Row count (>= 1)
        columns: Column count (>= 1)
        gap_x: Horizontal gap between columns (px)
        gap_y: Vertical gap between rows (px)
        slot_min_width: Generic width floor (px)
        slot_min_height: Generic height floor (px)
        overrides: Per-slot floors above the generic one
        is_placeholder: True for the 1×1 empty-state layout (no slots)

    Example:
        >>> grid = GridLayout(rows=2, columns=2, gap_x=15, gap_y=80,
        ...                   slot_min_width=120, slot_min_height=120)
        >>> grid.capacity
        4
    """

    rows: int
    columns: int
    gap_x: float
    gap_y: float
    slot_min_width: float
    slot_min_height: float
    overrides: Tuple[SlotOverride, ...] = ()
    is_placeholder: bool = False

    def __post_init__(self) -> None:
        if self.rows < 1 or self.columns < 1:
            raise ValueError(f"Grid needs at least one cell: {self.rows}x{self.columns}")

    @property
    def capacity(self) -> int:
        return self.rows * self.columns

    def min_height_for(self, slot_index: int) -> float:
        """Effective height floor for a slot index."""
        for override in self.overrides:
            if override.slot_index == slot_index:
                return max(self.slot_min_height, override.min_height)
        return self.slot_min_height


class RenderMode(Enum):
    """
    How a page is projected.

    INTERACTIVE emits editing affordances and dashed drop targets.
    PRINT never emits affordances, draws empty slots as solid neutral
    frames and shows descriptions only when they have text.
    """

    INTERACTIVE = "interactive"
    PRINT = "print"


class Affordance(Enum):
    """Interactive controls, looked up by tag during normalization."""

    ACTION_BAR = "action-bar"
    DROP_TARGET = "drop-target"
    REMOVE_SLOT = "remove-slot"
    ADD_SLOT = "add-slot"
    DESCRIPTION_EDITOR = "description-editor"
    EMPTY_STATE = "empty-state"


class BorderStyle(Enum):
    DASHED_BLACK = "dashed-black"    # slot holding a photo
    DASHED_GRAY = "dashed-gray"      # empty slot while editing
    SOLID_NEUTRAL = "solid-neutral"  # empty slot in print


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def scaled(self, factor: float) -> Tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) box at a pixel scale."""
        return (
            int(round(self.x * factor)),
            int(round(self.y * factor)),
            int(round(self.right * factor)),
            int(round(self.bottom * factor)),
        )


@dataclass(frozen=True)
class TextLine:
    """
    One positioned line of text.

    Attributes:
        text: Line content
        box: Line box; text is aligned within it
        font_family: Family name
        font_px: Font size in CSS px
        bold: Bold weight
        align: Horizontal alignment in the box
        color: Fill colour
    """

    text: str
    box: Rect
    font_family: str
    font_px: float
    bold: bool = False
    align: TextAlign = TextAlign.START
    color: str = "#333333"


@dataclass(frozen=True)
class SlotView:
    """
    Projection of one slot.

    Attributes:
        slot_id: Slot identity
        index: Position on the page
        cell: Whole grid cell
        image_box: Area the photo is drawn into
        border: Border style of the cell
        image: Photo reference (None for an empty slot)
        fit_mode / scale / rotation / confirmed_crop: Drawing transform
        description_box: Band box (None when no band)
        description_lines: Wrapped description text
        affordances: Interactive controls (always empty in PRINT)
    """

    slot_id: str
    index: int
    cell: Rect
    image_box: Rect
    border: BorderStyle
    image: Optional[ImageRef] = None
    fit_mode: FitMode = FitMode.FILL
    scale: float = 1.0
    rotation: int = 0
    confirmed_crop: Optional[CropBox] = None
    description_box: Optional[Rect] = None
    description_lines: Tuple[TextLine, ...] = ()
    affordances: Tuple[Affordance, ...] = ()


@dataclass(frozen=True)
class PageView:
    """
    Projection of one page, in CSS px.

    Attributes:
        page_id: Page identity
        mode: Render mode used
        width / height: Page size
        frame: Frame rectangle
        metadata_lines: Metadata block lines
        grid: Box the photo grid occupies (may extend past the frame)
        slots: Slot views in slot order
        spacers: Blank cells completing the last row
        affordances: Page-level controls (always empty in PRINT)
    """

    page_id: str
    mode: RenderMode
    width: int
    height: int
    frame: Rect
    frame_width: int
    metadata_lines: Tuple[TextLine, ...]
    grid: Rect
    slots: Tuple[SlotView, ...]
    spacers: Tuple[Rect, ...] = ()
    affordances: Tuple[Affordance, ...] = ()

    @property
    def overflows(self) -> bool:
        """True when the grid runs past the frame's inner edge."""
        return self.grid.bottom > self.frame.bottom
