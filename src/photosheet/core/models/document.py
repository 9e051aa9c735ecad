"""
Module: document

Purpose:
    The in-memory document tree: Document → Page → Slot. All models are
    frozen; every edit produces new objects via dataclasses.replace, so
    a Document held by one reader can never change underneath it.

Key Classes:
    - FitMode: fill (stretch) or cover (crop, keep aspect)
    - TextAlign: Title alignment
    - PageMetadata: Title / project / sub-project / manager strings
    - TitleStyle: Font settings for the metadata block
    - Slot: One photo placeholder
    - Page: Metadata + ordered slots
    - Document: Template + ordered pages + current page index

Dependencies:
    - dataclasses (std)
    - core.models.templates, core.models.images

Used By:
    - editor.store: Mutations
    - layout.projection: Page views
    - export.pipeline: Read-only snapshots
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, Optional

from .images import CropBox, ImageRef
from .templates import Template

MIN_SCALE = 0.5
MAX_SCALE = 2.0
VALID_ROTATIONS = (0, 90, 180, 270)
MAX_PAGES = 10

DEFAULT_TITLE = "Site Photo Record"
DEFAULT_FONT_FAMILY = "sans-serif"
DEFAULT_TITLE_FONT_SIZE = 14  # points


def new_id(prefix: str) -> str:
    """Generate a unique entity id like "slot-3f2a..."."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class FitMode(Enum):
    """How a photo fills its slot."""

    FILL = "fill"    # Stretch to the exact slot bounds (may distort)
    COVER = "cover"  # Preserve aspect, crop overflow


class TextAlign(Enum):
    START = "start"
    CENTER = "center"
    END = "end"


@dataclass(frozen=True)
class PageMetadata:
    title: str = DEFAULT_TITLE
    project_name: str = ""
    sub_project_name: str = ""
    manager: str = ""


@dataclass(frozen=True)
class TitleStyle:
    """
    Font settings for the page's metadata block.

    Attributes:
        align: Horizontal alignment of every metadata line
        font_family: Family name ("sans-serif", "serif", "monospace" or a
            concrete face such as "DejaVu Sans")
        font_size: Title size in points (positive)
        bold: Bold title line
    """

    align: TextAlign = TextAlign.START
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: int = DEFAULT_TITLE_FONT_SIZE
    bold: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.font_size, int) or self.font_size <= 0:
            raise ValueError(f"font_size must be a positive integer: {self.font_size!r}")


@dataclass(frozen=True)
class Slot:
    """
    One photo placeholder.

    Attributes:
        id: Slot identity
        image: Photo reference, or None for an empty slot
        scale: User zoom in [MIN_SCALE, MAX_SCALE]
        rotation: Rotation in degrees, one of VALID_ROTATIONS
        fit_mode: FILL or COVER
        description: Annotation text; None when no description field
        confirmed_crop: Pre-computed crop (original-aspect family only)

    Invariants:
        - An empty slot has scale=1, rotation=0, fit_mode=FILL,
          description=None and confirmed_crop=None
    """

    id: str = field(default_factory=lambda: new_id("slot"))
    image: Optional[ImageRef] = None
    scale: float = 1.0
    rotation: int = 0
    fit_mode: FitMode = FitMode.FILL
    description: Optional[str] = None
    confirmed_crop: Optional[CropBox] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def has_description_text(self) -> bool:
        """True when the description has visible content."""
        return bool(self.description and self.description.strip())

    def cleared(self) -> "Slot":
        """Copy of this slot with the image removed and transforms reset."""
        return Slot(id=self.id)


@dataclass(frozen=True)
class Page:
    id: str = field(default_factory=lambda: new_id("page"))
    metadata: PageMetadata = field(default_factory=PageMetadata)
    title_style: TitleStyle = field(default_factory=TitleStyle)
    slots: tuple[Slot, ...] = ()

    def slot_index(self, slot_id: str) -> int:
        """Index of a slot by id, -1 when absent."""
        for index, slot in enumerate(self.slots):
            if slot.id == slot_id:
                return index
        return -1

    def image_refs(self) -> Iterator[ImageRef]:
        """Image references held by this page's slots."""
        for slot in self.slots:
            if slot.image is not None:
                yield slot.image


@dataclass(frozen=True)
class Document:
    """
    The active document.

    Invariants:
        - 1 <= len(pages) <= MAX_PAGES
        - 0 <= current_page_index < len(pages)
    """

    template: Template
    pages: tuple[Page, ...]
    current_page_index: int = 0

    def __post_init__(self) -> None:
        if not self.pages:
            raise ValueError("A document needs at least one page")
        if len(self.pages) > MAX_PAGES:
            raise ValueError(f"A document holds at most {MAX_PAGES} pages")
        if not 0 <= self.current_page_index < len(self.pages):
            raise ValueError(f"current_page_index out of range: {self.current_page_index}")

    @property
    def current_page(self) -> Page:
        return self.pages[self.current_page_index]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_index(self, page_id: str) -> int:
        """Index of a page by id, -1 when absent."""
        for index, page in enumerate(self.pages):
            if page.id == page_id:
                return index
        return -1

    def with_page(self, index: int, page: Page) -> "Document":
        """Copy with one page replaced."""
        pages = self.pages[:index] + (page,) + self.pages[index + 1:]
        return replace(self, pages=pages)

    def image_refs(self) -> Iterator[ImageRef]:
        for page in self.pages:
            yield from page.image_refs()
