"""
Module: export.pipeline

Purpose:
    Orchestrate one export run as an explicit state machine.
    Preparing → WaitingForAssets → Normalizing → Capturing → Composing
    → Persisting → (Done | Failed | Cancelled)

    Pages are captured strictly one after another; each page is
    rasterized and JPEG-encoded before the next starts, so at most one
    full-resolution page bitmap exists at a time. The off-screen surface
    is disposed exactly once on every exit path.

Key Classes:
    - ExportPipeline: Runs exports, rejects concurrent runs

Dependencies:
    - asyncio (std)
    - export.offscreen, export.assets, export.persistence
    - output: Rasterizer, JPEG/PDF writers, filenames

Used By:
    - cli: `photosheet export`
    - Application shell
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from photosheet.core.models import Document
from photosheet.images import AssetLoader, ImageHandleRegistry, PillowAssetLoader
from photosheet.layout import PageView
from photosheet.notifications import NotificationLevel, Notify
from photosheet.output import (
    EncodedPage,
    build_filename,
    compose_pdf,
    encode_jpeg,
    render_page,
)

from .assets import AssetReadiness, wait_for_assets
from .config import ExportFormat, ExportOptions, MimeDescriptor
from .models import (
    DocumentSnapshot,
    ExportError,
    ExportInProgressError,
    ExportResult,
    ExportState,
    SavedFile,
)
from .offscreen import OffscreenSurface
from .persistence import PersistenceGateway

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
StateCallback = Callable[[ExportState], None]
Rasterizer = Callable[..., object]


class _Cancelled(Exception):
    """User cancelled the first save dialog."""


def _silent(message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
    return None


class ExportPipeline:
    """
    Export state machine.

    Args:
        gateway: Where output bytes go
        notify: User notification capability
        loader: Async image decoder (Pillow by default)
        rasterize: Page rasterizer, render_page(view, bitmaps, scale)
        surface_factory: Builds the off-screen surface for a document
        on_progress: Called as (pages_captured, total_pages)
        on_state: Called on every state transition

    Example:
        >>> pipeline = ExportPipeline(DirectoryGateway(Path("out")), channel.notify)
        >>> result = asyncio.run(pipeline.run(store.document, store.registry,
        ...                                   ExportOptions(format=ExportFormat.JPEG)))
        >>> result.state
        <ExportState.DONE: 'done'>
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        notify: Optional[Notify] = None,
        *,
        loader: Optional[AssetLoader] = None,
        rasterize: Rasterizer = render_page,
        surface_factory: Callable[[Document], OffscreenSurface] = OffscreenSurface,
        on_progress: Optional[ProgressCallback] = None,
        on_state: Optional[StateCallback] = None,
    ) -> None:
        self.gateway = gateway
        self.notify = notify or _silent
        self.loader = loader or PillowAssetLoader()
        self.rasterize = rasterize
        self.surface_factory = surface_factory
        self.on_progress = on_progress
        self.on_state = on_state
        self.state = ExportState.IDLE
        self._transitions: List[ExportState] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def _enter(self, state: ExportState) -> None:
        logger.debug(f"Export state: {self.state.value} -> {state.value}")
        self.state = state
        self._transitions.append(state)
        if self.on_state is not None:
            self.on_state(state)

    async def run(
        self,
        document: Document,
        registry: ImageHandleRegistry,
        options: Optional[ExportOptions] = None,
    ) -> ExportResult:
        """
        Export every page of a document.

        The document and its image bytes are snapshotted on entry; edits
        made while the run is in flight do not affect it.

        Returns:
            ExportResult in a terminal state

        Raises:
            ExportInProgressError: If a run is already active
        """
        if self._running:
            raise ExportInProgressError("An export is already running.")
        if document is None:
            raise ExportError("Nothing to export: choose a template first.")

        options = options or ExportOptions()
        self._running = True
        self._transitions = []
        surface: Optional[OffscreenSurface] = None
        start_time = time.perf_counter()

        saved: List[SavedFile] = []
        failed_pages: Tuple[int, ...] = ()
        degraded_pages: Tuple[int, ...] = ()
        skipped: List[str] = []
        error: Optional[str] = None

        logger.info(
            f"Starting {options.format.value} export of {document.page_count} page(s), "
            f"quality={options.quality.value}, scale={options.scale:.2f}"
        )

        try:
            # 1. Snapshot and mount off-screen
            self._enter(ExportState.PREPARING)
            snapshot = DocumentSnapshot.capture(document, registry)
            surface = self.surface_factory(snapshot.document)
            surface.mount()

            # 2. Decode assets, then wait for layout to settle
            self._enter(ExportState.WAITING_FOR_ASSETS)
            readiness = await wait_for_assets(
                snapshot,
                surface.views,
                self.loader,
                timeout=options.asset_timeout,
                scale=options.scale,
            )
            degraded_pages = tuple(sorted(readiness.degraded_pages))
            await surface.wait_until_settled(options.max_settle_passes)

            # 3. Print-only normalization
            self._enter(ExportState.NORMALIZING)
            surface.normalize()

            # 4. Capture page by page
            self._enter(ExportState.CAPTURING)
            encoded, failed = await self._capture(surface.views, readiness, options)
            failed_pages = tuple(failed)
            readiness.release()
            if not encoded:
                raise ExportError("No page could be captured.")

            # 5. Compose
            self._enter(ExportState.COMPOSING)
            outputs = self._compose(snapshot.document, encoded, options)

            # 6. Persist
            self._enter(ExportState.PERSISTING)
            await self._persist(outputs, options.format.mime, saved, skipped)
            self._enter(ExportState.DONE)

        except _Cancelled:
            self._enter(ExportState.CANCELLED)
        except ExportError as e:
            error = str(e)
            logger.error(f"Export failed: {error}")
            self._enter(ExportState.FAILED)
        except Exception as e:
            error = f"Unexpected export error: {e}"
            logger.exception("Export failed with an unexpected error")
            self._enter(ExportState.FAILED)
        finally:
            if surface is not None:
                surface.dispose()
            self._running = False

        result = ExportResult(
            state=self.state,
            files=tuple(saved),
            failed_pages=failed_pages,
            degraded_pages=degraded_pages,
            skipped_files=tuple(skipped),
            transitions=tuple(self._transitions),
            error=error,
        )
        elapsed = time.perf_counter() - start_time
        logger.info(f"Export finished: {result.state.value} in {elapsed:.2f}s")
        self._report(result)
        return result

    async def _capture(
        self,
        views: Sequence[PageView],
        readiness: AssetReadiness,
        options: ExportOptions,
    ) -> Tuple[List[EncodedPage], List[int]]:
        """Rasterize and encode pages one at a time; failures are per page."""
        encoded: List[EncodedPage] = []
        failed: List[int] = []
        total = len(views)
        scale = options.scale
        quality = options.quality.jpeg_quality

        for page_number, view in enumerate(views, start=1):
            try:
                bitmap = self.rasterize(view, readiness.bitmaps, scale)
                size = bitmap.size
                data = encode_jpeg(bitmap, quality)
                del bitmap
                encoded.append(EncodedPage(page_number=page_number, data=data, size=size))
                logger.debug(f"Captured page {page_number}/{total}: {size[0]}x{size[1]}, {len(data)} bytes")
            except Exception as e:
                logger.warning(f"Capture of page {page_number} failed: {e}")
                failed.append(page_number)
            if self.on_progress is not None:
                self.on_progress(page_number, total)
            await asyncio.sleep(0)

        return encoded, failed

    def _compose(
        self,
        document: Document,
        encoded: Sequence[EncodedPage],
        options: ExportOptions,
    ) -> List[Tuple[str, bytes]]:
        """Build (filename, bytes) outputs."""
        fmt = options.format
        multi_page = document.page_count > 1
        if fmt is ExportFormat.PDF:
            first = document.pages[0].metadata
            data = compose_pdf(
                encoded,
                document.template.orientation,
                first,
                total_pages=document.page_count,
            )
            return [(build_filename(first, fmt.extension), data)]

        outputs = []
        for page in encoded:
            metadata = document.pages[page.page_number - 1].metadata
            number = page.page_number if multi_page else None
            outputs.append((build_filename(metadata, fmt.extension, number), page.data))
        return outputs

    async def _persist(
        self,
        outputs: Sequence[Tuple[str, bytes]],
        mime: MimeDescriptor,
        saved: List[SavedFile],
        skipped: List[str],
    ) -> None:
        """
        Hand outputs to the gateway.

        Delivered files are appended to saved as they land, so a later
        failure still reports them. Cancelling the first file cancels the
        run; cancelling a later file skips just that file.
        """
        for index, (filename, data) in enumerate(outputs):
            delivered = await self._deliver(filename, data, mime)
            if delivered is None:
                if index == 0:
                    raise _Cancelled()
                logger.info(f"Skipped {filename} (save cancelled)")
                skipped.append(filename)
                continue
            saved.append(delivered)

    async def _deliver(
        self,
        filename: str,
        data: bytes,
        mime: MimeDescriptor,
    ) -> Optional[SavedFile]:
        """
        Save one file, falling back to offer_download.

        Returns:
            SavedFile, or None if the user cancelled

        Raises:
            ExportError: If both the write and the fallback failed
        """
        gateway = self.gateway
        if gateway.supports_save_target:
            try:
                target = await gateway.request_save_target(filename, mime)
            except Exception as e:
                logger.warning(f"Save location for {filename} unavailable: {e}")
            else:
                if target is None:
                    return None
                try:
                    written = await gateway.write(target, data)
                except Exception as e:
                    logger.warning(f"Writing {target.filename} raised: {e}")
                    written = False
                if written:
                    return SavedFile(
                        filename=target.filename,
                        size_bytes=len(data),
                        location=target.location,
                    )
                logger.warning(f"Writing {target.filename} failed; trying fallback delivery")
        else:
            logger.info("Gateway cannot pick save locations; using fallback delivery")

        try:
            offered = await gateway.offer_download(filename, data)
        except Exception as e:
            logger.error(f"Fallback delivery of {filename} raised: {e}")
            offered = False
        if not offered:
            raise ExportError(f"Could not save {filename}.")
        return SavedFile(filename=filename, size_bytes=len(data), via_fallback=True)

    def _report(self, result: ExportResult) -> None:
        if result.state is ExportState.CANCELLED:
            self.notify("Export cancelled.", NotificationLevel.INFO)
            return
        if result.state is ExportState.FAILED:
            message = f"Export failed: {result.error}"
            if result.files:
                names = ", ".join(f.filename for f in result.files)
                message += f" Already saved: {names}."
            self.notify(message, NotificationLevel.ERROR)
            return

        if result.degraded_pages:
            pages = ", ".join(str(p) for p in result.degraded_pages)
            self.notify(f"Some photos did not load in time on page(s) {pages}.", NotificationLevel.WARNING)
        if result.failed_pages:
            pages = ", ".join(str(p) for p in result.failed_pages)
            self.notify(f"Page(s) {pages} could not be captured and were skipped.", NotificationLevel.WARNING)
        fallback = any(f.via_fallback for f in result.files)
        suffix = " via download" if fallback else ""
        self.notify(f"Exported {len(result.files)} file(s){suffix}.", NotificationLevel.SUCCESS)
