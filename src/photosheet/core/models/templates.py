"""
Module: templates

Purpose:
    Template identity for photo sheets. A template is the pair
    (shape family, orientation) and is addressed by an identifier
    string such as "fourCut-portrait".

Key Classes:
    - ShapeFamily: Grid family (fixed 2/4/6-cut, custom, custom original-aspect)
    - Orientation: Portrait or landscape A4
    - Template: Frozen (family, orientation) pair with parsing helpers

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - core.models.document: Document.template
    - layout.geometry: Geometry rules per family
    - editor.store: Initial slot counts and slot limits
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


MAX_CUSTOM_SLOTS = 16


class TemplateError(ValueError):
    """Unknown or malformed template identifier."""


class ShapeFamily(Enum):
    """
    Grid family of a template.

    Fixed families carry a fixed slot count. Custom families start
    empty and accept between 0 and MAX_CUSTOM_SLOTS slots.

    Attributes:
        TWO_CUT: Two slots
        FOUR_CUT: Four slots in a 2×2 grid
        SIX_CUT: Six slots
        CUSTOM: Free slot count, rule-based auto grid
        CUSTOM_ORIGINAL: Free slot count, photos cropped to a confirmed
            region that preserves their original aspect
    """

    TWO_CUT = "twoCut"
    FOUR_CUT = "fourCut"
    SIX_CUT = "sixCut"
    CUSTOM = "custom"
    CUSTOM_ORIGINAL = "customOriginal"

    @property
    def is_custom(self) -> bool:
        """True for families with a user-controlled slot count."""
        return self in (ShapeFamily.CUSTOM, ShapeFamily.CUSTOM_ORIGINAL)

    @property
    def initial_slot_count(self) -> int:
        """Slot count of a freshly created page."""
        return _INITIAL_SLOT_COUNTS[self]


_INITIAL_SLOT_COUNTS = {
    ShapeFamily.TWO_CUT: 2,
    ShapeFamily.FOUR_CUT: 4,
    ShapeFamily.SIX_CUT: 6,
    ShapeFamily.CUSTOM: 0,
    ShapeFamily.CUSTOM_ORIGINAL: 0,
}


class Orientation(Enum):
    """Page orientation on A4 paper."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


@dataclass(frozen=True)
class Template:
    """
    A (shape family, orientation) pair.

    Example:
        >>> Template.parse("fourCut-portrait").family
        <ShapeFamily.FOUR_CUT: 'fourCut'>
        >>> str(Template(ShapeFamily.CUSTOM, Orientation.LANDSCAPE))
        'custom-landscape'
    """

    family: ShapeFamily
    orientation: Orientation

    @classmethod
    def parse(cls, identifier: str) -> "Template":
        """
        Parse an identifier like "sixCut-landscape".

        Raises:
            TemplateError: If the identifier is not a known template
        """
        family_part, sep, orientation_part = (identifier or "").strip().rpartition("-")
        if not sep:
            raise TemplateError(f"Malformed template id: {identifier!r}")
        try:
            family = ShapeFamily(family_part)
            orientation = Orientation(orientation_part)
        except ValueError as e:
            raise TemplateError(f"Unknown template id: {identifier!r}") from e
        return cls(family, orientation)

    @property
    def id(self) -> str:
        """Identifier string, e.g. "custom-portrait"."""
        return f"{self.family.value}-{self.orientation.value}"

    @property
    def is_landscape(self) -> bool:
        return self.orientation is Orientation.LANDSCAPE

    @property
    def is_custom(self) -> bool:
        return self.family.is_custom

    @property
    def max_slots(self) -> int:
        """Largest legal slot count per page."""
        if self.family.is_custom:
            return MAX_CUSTOM_SLOTS
        return self.family.initial_slot_count

    def __str__(self) -> str:
        return self.id


def is_template_id(value: str | None) -> bool:
    """Check whether a string names a known template."""
    if not value:
        return False
    try:
        Template.parse(value)
    except TemplateError:
        return False
    return True


ALL_TEMPLATES: tuple[Template, ...] = tuple(
    Template(family, orientation)
    for family in ShapeFamily
    for orientation in Orientation
)
