"""
Module: output.filenames

Purpose:
    Deterministic output filenames derived from a page's metadata.

    <title or fallback>[(<project>)][_<sub-project>][_page<N>].<ext>

Key Functions:
    - sanitize(): Make a string safe as a filename component
    - build_filename(): Filename for a page
"""

from __future__ import annotations

import re
from typing import Optional

from photosheet.core.models import PageMetadata

FALLBACK_TITLE = "SitePhotoRecord"

_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
_WHITESPACE = re.compile(r"\s+")


def sanitize(value: str) -> str:
    """
    Replace characters illegal in filenames, and whitespace runs, with "_".

    Example:
        >>> sanitize("North  wall: 2/3")
        'North_wall__2_3'
    """
    cleaned = _ILLEGAL_CHARS.sub("_", value.strip())
    return _WHITESPACE.sub("_", cleaned)


def build_filename(
    metadata: PageMetadata,
    extension: str,
    page_number: Optional[int] = None,
) -> str:
    """
    Build the filename for one page.

    Args:
        metadata: The page's own metadata
        extension: "pdf" or "jpg" (leading dot optional)
        page_number: 1-based page number, only for multi-page output

    Example:
        >>> build_filename(PageMetadata(title="Survey", project_name="Bridge",
        ...                             sub_project_name="Pier 2"), "jpg", 3)
        'Survey(Bridge)_Pier_2_page3.jpg'
    """
    name = sanitize(metadata.title) or FALLBACK_TITLE
    project = sanitize(metadata.project_name)
    if project:
        name += f"({project})"
    sub_project = sanitize(metadata.sub_project_name)
    if sub_project:
        name += f"_{sub_project}"
    if page_number is not None:
        name += f"_page{page_number}"
    return f"{name}.{extension.lstrip('.')}"
