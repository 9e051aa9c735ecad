"""
Module: output.pdf_writer

Purpose:
    Compose captured pages into a single A4 PDF using ReportLab.
    Each page image is embedded as JPEG, fitted to the limiting page
    dimension without distortion and anchored top-left.

Key Functions:
    - compose_pdf(): EncodedPages -> PDF bytes
    - pdf_metadata(): Document info fields from page 1

Dependencies:
    - reportlab: PDF generation
    - output.jpeg_writer: EncodedPage

Used By:
    - export.pipeline: COMPOSING phase
"""

from __future__ import annotations

import io
import logging
from typing import Dict, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from photosheet.core.models import Orientation, PageMetadata

from .jpeg_writer import EncodedPage

logger = logging.getLogger(__name__)

# Footer configuration
FOOTER_FONT = "Helvetica"
FOOTER_FONT_SIZE = 10
FOOTER_COLOR = colors.HexColor("#9CA3AF")
FOOTER_OFFSET = 5 * mm

PDF_CREATOR = "photosheet"


def page_size_for(orientation: Orientation) -> Tuple[float, float]:
    """A4 page size in points for an orientation."""
    return landscape(A4) if orientation is Orientation.LANDSCAPE else A4


def pdf_metadata(metadata: PageMetadata) -> Dict[str, str]:
    """
    Document info fields derived from the first page's metadata.

    Example:
        >>> pdf_metadata(PageMetadata(title="Survey", project_name="Bridge",
        ...                           sub_project_name="Pier 2"))["title"]
        'Survey - Bridge'
    """
    title = metadata.title.strip()
    project = metadata.project_name.strip()
    sub_project = metadata.sub_project_name.strip()
    return {
        "title": f"{title} - {project}" if project else title,
        "subject": f"Sub-project: {sub_project}" if sub_project else "",
        "author": sub_project,
        "creator": PDF_CREATOR,
    }


def compose_pdf(
    pages: Sequence[EncodedPage],
    orientation: Orientation,
    metadata: PageMetadata,
    *,
    total_pages: int,
) -> bytes:
    """
    Build a PDF with one A4 page per captured page.

    Args:
        pages: Captured pages in document order
        orientation: Template orientation
        metadata: First page's metadata (document info)
        total_pages: Page count of the document; footers "N / total" are
            drawn only when it is greater than one

    Returns:
        PDF bytes
    """
    page_width_pt, page_height_pt = page_size_for(orientation)
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(page_width_pt, page_height_pt))

    info = pdf_metadata(metadata)
    c.setTitle(info["title"])
    c.setSubject(info["subject"])
    c.setAuthor(info["author"])
    c.setCreator(info["creator"])

    for page in pages:
        _draw_page_image(c, page, page_width_pt, page_height_pt)
        if total_pages > 1:
            _draw_footer(c, page.page_number, total_pages, page_width_pt)
        c.showPage()

    c.save()
    logger.info(f"Composed {len(pages)} page(s) into PDF ({orientation.value})")
    return buf.getvalue()


def _draw_page_image(
    c: canvas.Canvas,
    page: EncodedPage,
    page_width_pt: float,
    page_height_pt: float,
) -> None:
    """Fit the image to the limiting dimension, anchored top-left."""
    image_width, image_height = page.size
    factor = min(page_width_pt / image_width, page_height_pt / image_height)
    width_pt = image_width * factor
    height_pt = image_height * factor
    # PDF origin is bottom-left
    c.drawImage(
        ImageReader(io.BytesIO(page.data)),
        0,
        page_height_pt - height_pt,
        width=width_pt,
        height=height_pt,
    )


def _draw_footer(
    c: canvas.Canvas,
    page_number: int,
    total_pages: int,
    page_width_pt: float,
) -> None:
    text = f"{page_number} / {total_pages}"
    c.saveState()
    c.setFont(FOOTER_FONT, FOOTER_FONT_SIZE)
    c.setFillColor(FOOTER_COLOR)
    c.drawCentredString(page_width_pt / 2, FOOTER_OFFSET, text)
    c.restoreState()
