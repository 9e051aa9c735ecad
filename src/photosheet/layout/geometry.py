"""
Module: layout.geometry

Purpose:
    The geometry engine: maps (template, slot count) to a grid.
    Pure and total. Every slot count a template can hold gets a valid
    layout; illegal counts are prevented upstream by the editor.

Key Functions:
    - layout(): Grid for a template and slot count
    - grid_cells(): Row-major cell positions with spacer flags
    - custom_portrait_rows(): Row table for custom portrait pages

Dependencies:
    - math (std)
    - layout.config: mm_to_px
    - layout.models: GridLayout, SlotOverride

Used By:
    - layout.projection: Page views
    - cli: `photosheet layout`
"""

from __future__ import annotations

import math
from typing import List, Tuple

from photosheet.core.models import Orientation, ShapeFamily, Template

from .config import mm_to_px
from .models import GridLayout, SlotOverride

# Gaps (CSS px)
STANDARD_GAP_PX = mm_to_px(2)
FOUR_CUT_GAP_X = 15.0
FOUR_CUT_GAP_Y = 80.0
CUSTOM_PORTRAIT_GAP = 15.0

# Floors (CSS px)
SLOT_MIN_WIDTH = 120.0
SLOT_MIN_HEIGHT = 120.0
# Four-row custom portrait pages keep room for the description band
TEXT_BAND_MIN_HEIGHT = 130.0

# Visual-balance table for custom portrait pages: slot count -> rows.
# Product decision, not a formula.
_CUSTOM_PORTRAIT_ROWS = {
    0: 1,
    1: 1,
    2: 2,
    3: 2,
    4: 2,
    5: 3, 6: 3, 7: 3, 8: 3, 9: 3,
    10: 4, 11: 4, 12: 4,
    13: 5, 14: 5, 15: 5, 16: 5,
}

# Fixed families: (rows, columns) per orientation
_FIXED_GRIDS = {
    (ShapeFamily.TWO_CUT, Orientation.PORTRAIT): (2, 1),
    (ShapeFamily.TWO_CUT, Orientation.LANDSCAPE): (1, 2),
    (ShapeFamily.FOUR_CUT, Orientation.PORTRAIT): (2, 2),
    (ShapeFamily.FOUR_CUT, Orientation.LANDSCAPE): (2, 2),
    (ShapeFamily.SIX_CUT, Orientation.PORTRAIT): (3, 2),
    (ShapeFamily.SIX_CUT, Orientation.LANDSCAPE): (2, 3),
}


def custom_portrait_rows(slot_count: int) -> int:
    """
    Row count for a custom portrait page.

    Uses the lookup table up to 16 slots and a square-ish fallback
    beyond it.

    Example:
        >>> custom_portrait_rows(11)
        4
        >>> custom_portrait_rows(6)
        3
    """
    if slot_count in _CUSTOM_PORTRAIT_ROWS:
        return _CUSTOM_PORTRAIT_ROWS[slot_count]
    return max(1, math.ceil(math.sqrt(slot_count)))


def _square_grid(slot_count: int) -> Tuple[int, int]:
    rows = max(1, math.ceil(math.sqrt(slot_count)))
    columns = max(1, math.ceil(slot_count / rows))
    return rows, columns


def layout(template: Template, slot_count: int) -> GridLayout:
    """
    Compute the grid for a template and slot count.

    Args:
        template: Active template
        slot_count: Number of slots on the page (>= 0)

    Returns:
        GridLayout with rows × columns >= slot_count. Zero slots give a
        1×1 placeholder layout.

    Example:
        >>> grid = layout(Template.parse("fourCut-portrait"), 4)
        >>> (grid.rows, grid.columns, grid.gap_x, grid.gap_y)
        (2, 2, 15.0, 80.0)
    """
    slot_count = max(0, slot_count)
    gap_x = gap_y = STANDARD_GAP_PX
    overrides: Tuple[SlotOverride, ...] = ()
    family = template.family

    if slot_count == 0:
        gap = CUSTOM_PORTRAIT_GAP if (
            family is ShapeFamily.CUSTOM and not template.is_landscape
        ) else STANDARD_GAP_PX
        return GridLayout(
            rows=1,
            columns=1,
            gap_x=gap,
            gap_y=gap,
            slot_min_width=SLOT_MIN_WIDTH,
            slot_min_height=SLOT_MIN_HEIGHT,
            is_placeholder=True,
        )

    if family in (ShapeFamily.TWO_CUT, ShapeFamily.FOUR_CUT, ShapeFamily.SIX_CUT):
        rows, columns = _FIXED_GRIDS[(family, template.orientation)]
        if rows * columns < slot_count:
            rows = math.ceil(slot_count / columns)
        if family is ShapeFamily.FOUR_CUT:
            gap_x, gap_y = FOUR_CUT_GAP_X, FOUR_CUT_GAP_Y

    elif family is ShapeFamily.CUSTOM and not template.is_landscape:
        rows = custom_portrait_rows(slot_count)
        columns = max(1, math.ceil(slot_count / rows))
        gap_x = gap_y = CUSTOM_PORTRAIT_GAP
        if rows == 4 and 10 <= slot_count <= 12:
            overrides = tuple(
                SlotOverride(slot_index=i, min_height=TEXT_BAND_MIN_HEIGHT)
                for i in range(slot_count)
            )

    else:
        # Custom landscape and the original-aspect family
        rows, columns = _square_grid(slot_count)

    return GridLayout(
        rows=rows,
        columns=columns,
        gap_x=gap_x,
        gap_y=gap_y,
        slot_min_width=SLOT_MIN_WIDTH,
        slot_min_height=SLOT_MIN_HEIGHT,
        overrides=overrides,
    )


def grid_cells(grid: GridLayout, slot_count: int) -> List[Tuple[int, int, bool]]:
    """
    Row-major cells of a grid.

    Returns:
        (row, column, is_spacer) for every cell; the first slot_count
        cells hold slots, the rest are blank spacers.

    Example:
        >>> grid = layout(Template.parse("custom-portrait"), 10)
        >>> [cell for cell in grid_cells(grid, 10) if cell[2]]
        [(3, 1, True), (3, 2, True)]
    """
    cells = []
    for index in range(grid.capacity):
        row, column = divmod(index, grid.columns)
        cells.append((row, column, index >= slot_count))
    return cells
