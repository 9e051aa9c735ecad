"""
Module: layout

Purpose:
    Geometry engine and page projection.
    Converts templates and pages into positioned, drawable views.

Key Functions:
    - layout(): Grid rules per template and slot count
    - project_page(): Page -> PageView

Key Classes:
    - PageGeometry: A4 geometry in CSS px
    - GridLayout: Geometry engine output
    - RenderSurface: Reactive projection of a document

Used By:
    - editor.controller: Crop confirmation boxes
    - export: Off-screen print rendering
"""

from .config import PageGeometry, mm_to_px, pt_to_px
from .models import (
    Affordance,
    BorderStyle,
    GridLayout,
    PageView,
    Rect,
    RenderMode,
    SlotOverride,
    SlotView,
    TextLine,
)
from .geometry import custom_portrait_rows, grid_cells, layout
from .projection import find_affordances, metadata_lines, project_page, strip_affordances
from .surface import RenderSurface, project_document

__all__ = [
    # Config
    "PageGeometry",
    "mm_to_px",
    "pt_to_px",
    # Models
    "Affordance",
    "BorderStyle",
    "GridLayout",
    "PageView",
    "Rect",
    "RenderMode",
    "SlotOverride",
    "SlotView",
    "TextLine",
    # Functions
    "custom_portrait_rows",
    "grid_cells",
    "layout",
    "find_affordances",
    "metadata_lines",
    "project_page",
    "strip_affordances",
    "project_document",
    "RenderSurface",
]
