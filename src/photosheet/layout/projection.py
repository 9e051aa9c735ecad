"""
Module: layout.projection

Purpose:
    Project a Page into a PageView: absolute boxes for the frame, the
    metadata block, every slot and its description band. The projection
    is a pure function of (page, template, geometry, mode); the render
    mode decides whether interactive affordances are emitted.

Key Functions:
    - project_page(): Page -> PageView
    - metadata_lines(): Text of the metadata block
    - find_affordances(): Tag-based lookup of interactive controls
    - strip_affordances(): Copy of a view without interactive controls

Dependencies:
    - layout.geometry: Grid rules
    - layout.text: Font metrics for wrapping

Used By:
    - layout.surface: Interactive re-projection
    - export.offscreen: Print-mode mounting
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from photosheet.core.models import (
    MAX_CUSTOM_SLOTS,
    Page,
    Slot,
    Template,
    TextAlign,
)

from .config import PageGeometry, pt_to_px
from .geometry import grid_cells, layout
from .models import (
    Affordance,
    BorderStyle,
    GridLayout,
    PageView,
    Rect,
    RenderMode,
    SlotView,
    TextLine,
)
from .text import load_font, wrap_text

logger = logging.getLogger(__name__)

DESCRIPTION_FONT_FAMILY = "sans-serif"
DESCRIPTION_BORDER_PX = 1


def metadata_lines(page: Page) -> List[Tuple[str, bool]]:
    """
    Text of the metadata block.

    Returns:
        (text, is_title_line) pairs; empty fields are omitted

    Example:
        >>> metadata_lines(page)
        [('Site Photo Record [Project : Bridge]', True), ('Manager: Kim', False)]
    """
    meta = page.metadata
    lines: List[Tuple[str, bool]] = []
    title = meta.title.strip()
    if meta.project_name.strip():
        title = f"{title} [Project : {meta.project_name.strip()}]".strip()
    if title:
        lines.append((title, True))
    if meta.sub_project_name.strip():
        lines.append((f"Sub-project : {meta.sub_project_name.strip()}", False))
    if meta.manager.strip():
        lines.append((f"Manager: {meta.manager.strip()}", False))
    return lines


def _metadata_block(
    page: Page,
    geometry: PageGeometry,
) -> Tuple[Tuple[TextLine, ...], float]:
    """Lay out metadata lines; return them and the y where the grid starts."""
    style = page.title_style
    x = geometry.content_inset
    y = geometry.content_inset
    lines = []
    for text, is_title in metadata_lines(page):
        font_px = pt_to_px(style.font_size) if is_title else geometry.secondary_font_px
        height = font_px * geometry.metadata_line_height
        lines.append(TextLine(
            text=text,
            box=Rect(x, y, geometry.content_width, height),
            font_family=style.font_family,
            font_px=font_px,
            bold=style.bold and is_title,
            align=style.align,
            color=geometry.metadata_color,
        ))
        y += height
    if lines:
        y += geometry.metadata_gap
    return tuple(lines), y


def _shows_description(slot: Slot, mode: RenderMode) -> bool:
    if mode is RenderMode.PRINT:
        return slot.has_image and slot.has_description_text
    return slot.has_image and slot.description is not None


def _description_lines(
    slot: Slot,
    width: float,
    mode: RenderMode,
    geometry: PageGeometry,
) -> List[str]:
    font = load_font(DESCRIPTION_FONT_FAMILY, round(geometry.description_font_px))
    inner = max(1.0, width - 2 * geometry.description_padding_x)
    lines = wrap_text((slot.description or "").strip(), font, inner)
    if not lines and mode is RenderMode.INTERACTIVE:
        lines = [""]
    return lines


def _band_height(line_count: int, geometry: PageGeometry) -> float:
    return (
        line_count * geometry.description_line_px
        + 2 * geometry.description_padding_y
        + DESCRIPTION_BORDER_PX
    )


def _slot_affordances(
    slot: Slot,
    template: Template,
    shows_description: bool,
) -> Tuple[Affordance, ...]:
    tags = [Affordance.ACTION_BAR if slot.has_image else Affordance.DROP_TARGET]
    if template.is_custom:
        tags.append(Affordance.REMOVE_SLOT)
    if shows_description:
        tags.append(Affordance.DESCRIPTION_EDITOR)
    return tuple(tags)


def project_page(
    page: Page,
    template: Template,
    *,
    mode: RenderMode = RenderMode.INTERACTIVE,
    geometry: Optional[PageGeometry] = None,
) -> PageView:
    """
    Project a page into absolute boxes.

    Slots never shrink below their floors, and a row grows so every
    description band in it fits below the minimum image height. The
    grid may then extend past the frame; callers clip.

    Args:
        page: Page to project
        template: Active template
        mode: INTERACTIVE or PRINT
        geometry: Page geometry (defaults to A4 for the orientation)

    Returns:
        PageView in CSS px
    """
    geometry = geometry or PageGeometry.for_orientation(template.orientation)
    slot_count = len(page.slots)
    grid = layout(template, slot_count)

    frame = Rect(
        geometry.page_padding,
        geometry.page_padding,
        geometry.page_width - 2 * geometry.page_padding,
        geometry.page_height - 2 * geometry.page_padding,
    )
    text_lines, grid_top = _metadata_block(page, geometry)
    grid_left = geometry.content_inset
    grid_width = geometry.content_width
    grid_height = max(0.0, geometry.page_height - geometry.content_inset - grid_top)

    column_width = max(
        grid.slot_min_width,
        (grid_width - grid.gap_x * (grid.columns - 1)) / grid.columns,
    )
    base_row_height = (grid_height - grid.gap_y * (grid.rows - 1)) / grid.rows

    # Description lines per slot, wrapped at the final column width
    wrapped: List[Optional[List[str]]] = []
    for slot in page.slots:
        if _shows_description(slot, mode):
            wrapped.append(_description_lines(slot, column_width, mode, geometry))
        else:
            wrapped.append(None)

    row_heights = _row_heights(grid, slot_count, base_row_height, wrapped, geometry)

    row_tops = []
    y = grid_top
    for height in row_heights:
        row_tops.append(y)
        y += height + grid.gap_y
    grid_bottom = y - grid.gap_y

    slot_views = []
    spacers = []
    for index, (row, column, is_spacer) in enumerate(grid_cells(grid, slot_count)):
        cell = Rect(
            grid_left + column * (column_width + grid.gap_x),
            row_tops[row],
            column_width,
            row_heights[row],
        )
        if grid.is_placeholder:
            break
        if is_spacer:
            spacers.append(cell)
            continue
        slot_views.append(
            _project_slot(page.slots[index], index, cell, wrapped[index], template, mode, geometry)
        )

    page_affordances: Tuple[Affordance, ...] = ()
    if mode is RenderMode.INTERACTIVE:
        tags = []
        if grid.is_placeholder:
            tags.append(Affordance.EMPTY_STATE)
        if template.is_custom and slot_count < MAX_CUSTOM_SLOTS:
            tags.append(Affordance.ADD_SLOT)
        page_affordances = tuple(tags)

    return PageView(
        page_id=page.id,
        mode=mode,
        width=geometry.page_width,
        height=geometry.page_height,
        frame=frame,
        frame_width=geometry.frame_width,
        metadata_lines=text_lines,
        grid=Rect(grid_left, grid_top, grid_width, max(grid_bottom - grid_top, 0.0)),
        slots=tuple(slot_views),
        spacers=tuple(spacers),
        affordances=page_affordances,
    )


def _row_heights(
    grid: GridLayout,
    slot_count: int,
    base_row_height: float,
    wrapped: List[Optional[List[str]]],
    geometry: PageGeometry,
) -> List[float]:
    heights = [max(base_row_height, grid.slot_min_height)] * grid.rows
    for index in range(slot_count):
        row = index // grid.columns
        needed = grid.min_height_for(index)
        lines = wrapped[index]
        if lines is not None:
            needed = max(needed, geometry.image_min_height + _band_height(len(lines), geometry))
        heights[row] = max(heights[row], needed)
    return heights


def _project_slot(
    slot: Slot,
    index: int,
    cell: Rect,
    lines: Optional[List[str]],
    template: Template,
    mode: RenderMode,
    geometry: PageGeometry,
) -> SlotView:
    description_box = None
    text_lines: Tuple[TextLine, ...] = ()
    image_box = cell
    if lines is not None:
        band = _band_height(len(lines), geometry)
        image_box = Rect(cell.x, cell.y, cell.width, cell.height - band)
        description_box = Rect(cell.x, image_box.bottom, cell.width, band)
        line_y = description_box.y + DESCRIPTION_BORDER_PX + geometry.description_padding_y
        text_lines = tuple(
            TextLine(
                text=text,
                box=Rect(
                    cell.x + geometry.description_padding_x,
                    line_y + i * geometry.description_line_px,
                    cell.width - 2 * geometry.description_padding_x,
                    geometry.description_line_px,
                ),
                font_family=DESCRIPTION_FONT_FAMILY,
                font_px=geometry.description_font_px,
                align=TextAlign.CENTER,
                color=geometry.description_color,
            )
            for i, text in enumerate(lines)
        )

    if slot.has_image:
        border = BorderStyle.DASHED_BLACK
    elif mode is RenderMode.PRINT:
        border = BorderStyle.SOLID_NEUTRAL
    else:
        border = BorderStyle.DASHED_GRAY

    affordances: Tuple[Affordance, ...] = ()
    if mode is RenderMode.INTERACTIVE:
        affordances = _slot_affordances(slot, template, lines is not None)

    return SlotView(
        slot_id=slot.id,
        index=index,
        cell=cell,
        image_box=image_box,
        border=border,
        image=slot.image,
        fit_mode=slot.fit_mode,
        scale=slot.scale,
        rotation=slot.rotation,
        confirmed_crop=slot.confirmed_crop,
        description_box=description_box,
        description_lines=text_lines,
        affordances=affordances,
    )


def find_affordances(view: PageView) -> List[Tuple[Optional[str], Affordance]]:
    """
    Every interactive control in a view, by tag.

    Returns:
        (slot_id or None for page-level, affordance) pairs
    """
    found: List[Tuple[Optional[str], Affordance]] = [(None, tag) for tag in view.affordances]
    for slot_view in view.slots:
        found.extend((slot_view.slot_id, tag) for tag in slot_view.affordances)
    return found


def strip_affordances(view: PageView) -> PageView:
    """Copy of a view with every interactive control removed."""
    if not find_affordances(view):
        return view
    return replace(
        view,
        affordances=(),
        slots=tuple(replace(slot_view, affordances=()) for slot_view in view.slots),
    )
