"""
Core Models Package

Immutable data models that serve as the single source of truth.

All models in this package are frozen dataclasses. This ensures:
1. No accidental mutation while an export reads a snapshot
2. Editing one slot can never be observed on another slot or page
3. Easier to reason about data flow
"""

from .templates import (
    ALL_TEMPLATES,
    MAX_CUSTOM_SLOTS,
    Orientation,
    ShapeFamily,
    Template,
    TemplateError,
    is_template_id,
)
from .images import CropBox, ImageRef
from .document import (
    DEFAULT_TITLE,
    MAX_PAGES,
    MAX_SCALE,
    MIN_SCALE,
    VALID_ROTATIONS,
    Document,
    FitMode,
    Page,
    PageMetadata,
    Slot,
    TextAlign,
    TitleStyle,
    new_id,
)

__all__ = [
    "ALL_TEMPLATES",
    "MAX_CUSTOM_SLOTS",
    "Orientation",
    "ShapeFamily",
    "Template",
    "TemplateError",
    "is_template_id",
    "CropBox",
    "ImageRef",
    "DEFAULT_TITLE",
    "MAX_PAGES",
    "MAX_SCALE",
    "MIN_SCALE",
    "VALID_ROTATIONS",
    "Document",
    "FitMode",
    "Page",
    "PageMetadata",
    "Slot",
    "TextAlign",
    "TitleStyle",
    "new_id",
]
