"""
Module: export.models

Purpose:
    Data models for export runs: the state machine's states, the
    read-only document snapshot and the run result.

Key Classes:
    - ExportState: Pipeline states
    - DocumentSnapshot: Frozen document + copied image bytes
    - SavedFile: One delivered file
    - ExportResult: Outcome of one run
    - ExportError / ExportInProgressError: Pipeline exceptions

Dependencies:
    - dataclasses (std)
    - core.models: Document
    - images.handles: ImageHandleRegistry (snapshot source)

Used By:
    - export.pipeline
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from photosheet.core.models import Document
from photosheet.images import HandleRevokedError, ImageHandleRegistry

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """Export could not be started or completed."""
    pass


class ExportInProgressError(ExportError):
    """Another run is already active on this pipeline."""
    pass


class ExportState(Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    WAITING_FOR_ASSETS = "waiting_for_assets"
    NORMALIZING = "normalizing"
    CAPTURING = "capturing"
    COMPOSING = "composing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportState.DONE, ExportState.FAILED, ExportState.CANCELLED)


@dataclass(frozen=True)
class DocumentSnapshot:
    """
    Read-only copy of what an export needs.

    The Document is already immutable; the image bytes are copied out of
    the registry so later edits (which may revoke handles) cannot affect
    an export in flight.
    """

    document: Document
    image_data: Mapping[str, bytes]

    @classmethod
    def capture(cls, document: Document, registry: ImageHandleRegistry) -> "DocumentSnapshot":
        data = {}
        for ref in document.image_refs():
            try:
                data[ref.handle_id] = registry.resolve(ref.handle_id)
            except HandleRevokedError:
                logger.warning(f"Image {ref.filename} was released before export; page will be degraded")
        return cls(document=document, image_data=MappingProxyType(data))


@dataclass(frozen=True)
class SavedFile:
    """
    One delivered file.

    Attributes:
        filename: Final filename
        size_bytes: Bytes written
        via_fallback: True when delivered through offer_download
        location: Where it ended up (path or gateway-specific label)
    """

    filename: str
    size_bytes: int
    via_fallback: bool = False
    location: Optional[str] = None


@dataclass(frozen=True)
class ExportResult:
    """
    Outcome of one export run (immutable).

    Attributes:
        state: Terminal state (DONE, FAILED or CANCELLED)
        files: Delivered files in page order
        failed_pages: 1-based pages whose capture failed
        degraded_pages: 1-based pages with an image that never became ready
        skipped_files: JPEG files the user cancelled after the first
        transitions: Every state entered, in order
        error: Failure message for FAILED runs

    Example:
        >>> result = await pipeline.run(document, registry)
        >>> result.succeeded, [f.filename for f in result.files]
        (True, ['Survey_page1.jpg', 'Survey_page2.jpg'])
    """

    state: ExportState
    files: Tuple[SavedFile, ...] = ()
    failed_pages: Tuple[int, ...] = ()
    degraded_pages: Tuple[int, ...] = ()
    skipped_files: Tuple[str, ...] = ()
    transitions: Tuple[ExportState, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is ExportState.DONE

    @property
    def is_partial(self) -> bool:
        """Completed, but some pages failed or were degraded."""
        return self.succeeded and bool(self.failed_pages or self.degraded_pages)
