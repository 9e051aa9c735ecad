"""
Module: output

Purpose:
    Turn projected pages into files: rasterize, encode JPEG, compose PDF,
    and name the results.

Key Functions:
    - render_page(): PageView -> bitmap
    - encode_jpeg(): bitmap -> JPEG bytes
    - compose_pdf(): JPEG pages -> PDF bytes
    - build_filename(): Page metadata -> filename

Used By:
    - export.pipeline
"""

from .filenames import FALLBACK_TITLE, build_filename, sanitize
from .jpeg_writer import EncodedPage, encode_jpeg
from .pdf_writer import compose_pdf, page_size_for, pdf_metadata
from .rasterizer import RasterizeError, compose_photo, render_page

__all__ = [
    "FALLBACK_TITLE",
    "build_filename",
    "sanitize",
    "EncodedPage",
    "encode_jpeg",
    "compose_pdf",
    "page_size_for",
    "pdf_metadata",
    "RasterizeError",
    "compose_photo",
    "render_page",
]
