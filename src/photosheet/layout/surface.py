"""
Module: layout.surface

Purpose:
    Reactive render surface. Subscribes to a document source and
    re-derives the page views after every mutation; it holds no state
    of its own beyond the last projection.

Key Classes:
    - DocumentSource: Protocol for anything exposing a document + subscribe
    - RenderSurface: Subscribe → re-derive loop

Dependencies:
    - layout.projection: project_page

Used By:
    - Application shell: Interactive preview
    - tests: Reactive projection
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, Tuple

from photosheet.core.models import Document

from .config import PageGeometry
from .models import PageView, RenderMode
from .projection import project_page

logger = logging.getLogger(__name__)

ViewListener = Callable[[Tuple[PageView, ...]], None]


class DocumentSource(Protocol):
    @property
    def document(self) -> Optional[Document]: ...

    def subscribe(self, callback: Callable[[Optional[Document]], None]) -> Callable[[], None]: ...


def project_document(
    document: Optional[Document],
    mode: RenderMode,
    geometry: Optional[PageGeometry] = None,
) -> Tuple[PageView, ...]:
    """Project every page of a document (empty when there is none)."""
    if document is None:
        return ()
    geometry = geometry or PageGeometry.for_orientation(document.template.orientation)
    return tuple(
        project_page(page, document.template, mode=mode, geometry=geometry)
        for page in document.pages
    )


class RenderSurface:
    """
    Live projection of a document source.

    Example:
        >>> surface = RenderSurface(store)
        >>> store.add_page()
        >>> len(surface.views) == store.document.page_count
        True
    """

    def __init__(self, source: DocumentSource, mode: RenderMode = RenderMode.INTERACTIVE) -> None:
        self._source = source
        self._mode = mode
        self._listeners: List[ViewListener] = []
        self._views = project_document(source.document, mode)
        self._unsubscribe: Optional[Callable[[], None]] = source.subscribe(self._on_document)

    @property
    def views(self) -> Tuple[PageView, ...]:
        return self._views

    @property
    def current_view(self) -> Optional[PageView]:
        document = self._source.document
        if document is None or not self._views:
            return None
        return self._views[document.current_page_index]

    def on_change(self, listener: ViewListener) -> Callable[[], None]:
        """Register a listener for new projections; returns an unsubscribe."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _on_document(self, document: Optional[Document]) -> None:
        self._views = project_document(document, self._mode)
        for listener in list(self._listeners):
            listener(self._views)

    def close(self) -> None:
        """Stop following the source."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()
