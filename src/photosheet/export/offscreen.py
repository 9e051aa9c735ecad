"""
Module: export.offscreen

Purpose:
    Detached, non-interactive render of every page of a snapshot.
    The container width is the orientation's fixed print width, never
    the live viewport, so output does not depend on the editor window.

    Layout readiness is an explicit signal: wait_until_settled() runs
    layout passes until two consecutive passes produce identical views.

Key Classes:
    - OffscreenSurface: Mount → settle → normalize → dispose

Dependencies:
    - asyncio (std): Yields between layout passes
    - layout.projection: PRINT-mode projection

Used By:
    - export.pipeline: One surface per run
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from photosheet.core.models import Document
from photosheet.layout import (
    PageGeometry,
    PageView,
    RenderMode,
    find_affordances,
    project_page,
    strip_affordances,
)

logger = logging.getLogger(__name__)


class SurfaceDisposedError(RuntimeError):
    """Surface used after dispose()."""
    pass


class OffscreenSurface:
    """
    Print-mode render tree for one export run.

    Interaction callbacks are no-ops; the surface is detached from any
    visible viewport. It must be disposed exactly once.
    """

    detached = True
    interactive = False

    def __init__(self, document: Document, geometry: Optional[PageGeometry] = None) -> None:
        self.document = document
        self.geometry = geometry or PageGeometry.for_orientation(document.template.orientation)
        self._views: Tuple[PageView, ...] = ()
        self._mounted = False
        self.disposed = False
        self.layout_passes = 0

    @property
    def container_width(self) -> int:
        return self.geometry.page_width

    @property
    def views(self) -> Tuple[PageView, ...]:
        self._check_alive()
        return self._views

    def _check_alive(self) -> None:
        if self.disposed:
            raise SurfaceDisposedError("Off-screen surface has been disposed")

    def handle_interaction(self, *args, **kwargs) -> None:
        """Detached surfaces ignore every interaction."""
        return None

    def _layout_pass(self) -> Tuple[PageView, ...]:
        self.layout_passes += 1
        return tuple(
            project_page(page, self.document.template, mode=RenderMode.PRINT, geometry=self.geometry)
            for page in self.document.pages
        )

    def mount(self) -> None:
        """Build the initial print-mode views for every page."""
        self._check_alive()
        self._views = self._layout_pass()
        self._mounted = True
        logger.debug(
            f"Mounted {len(self._views)} page(s) off-screen at width {self.container_width}px"
        )

    async def wait_until_settled(self, max_passes: int) -> bool:
        """
        Run layout passes until two consecutive ones agree.

        Returns:
            True if layout settled within max_passes; otherwise False and
            the last pass is kept
        """
        self._check_alive()
        previous = self._views if self._mounted else None
        for _ in range(max_passes):
            await asyncio.sleep(0)
            current = self._layout_pass()
            if previous is not None and current == previous:
                self._views = current
                return True
            previous = current
        self._views = previous or ()
        logger.warning(f"Layout did not settle after {max_passes} passes")
        return False

    def normalize(self) -> int:
        """
        Remove any interactive affordance that survived projection.

        Returns:
            Number of affordances removed
        """
        self._check_alive()
        removed = 0
        views = []
        for view in self._views:
            found = find_affordances(view)
            removed += len(found)
            views.append(strip_affordances(view) if found else view)
        self._views = tuple(views)
        if removed:
            logger.warning(f"Stripped {removed} interactive affordance(s) before capture")
        return removed

    def dispose(self) -> None:
        """Unmount and release the render tree."""
        if self.disposed:
            logger.warning("Off-screen surface disposed twice")
            return
        self._views = ()
        self._mounted = False
        self.disposed = True
        logger.debug("Off-screen surface disposed")
