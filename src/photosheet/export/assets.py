"""
Module: export.assets

Purpose:
    WAITING_FOR_ASSETS phase. Decode every image of the snapshot and
    wait until each is ready (decoded AND non-zero natural size), with a
    per-image timeout. Images that time out or fail to decode do not
    block the run; their pages are reported as degraded.

    Bitmaps are reduced to the resolution their print box needs, so the
    decoded set stays bounded regardless of camera resolution.

Key Functions:
    - wait_for_assets(): Decode with timeouts, collect degraded pages
    - needed_min_side(): Shortest side worth keeping for a slot

Dependencies:
    - asyncio (std): Timeouts
    - images.loader: AssetLoader

Used By:
    - export.pipeline
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set, Tuple

from PIL import Image

from photosheet.images import AssetLoadError, AssetLoader
from photosheet.layout import PageView, SlotView

from .models import DocumentSnapshot

logger = logging.getLogger(__name__)

# Zoom headroom: slots can be scaled up to 2x
ZOOM_HEADROOM = 2.0


@dataclass
class AssetReadiness:
    """
    Result of the asset wait.

    Attributes:
        bitmaps: Ready bitmaps by handle id
        degraded_pages: 1-based page numbers with at least one image
            that never became ready
        timed_out: Handle ids that hit the timeout
    """

    bitmaps: Dict[str, Image.Image] = field(default_factory=dict)
    degraded_pages: Set[int] = field(default_factory=set)
    timed_out: Set[str] = field(default_factory=set)

    def release(self) -> None:
        """Drop every bitmap."""
        self.bitmaps.clear()


def needed_min_side(slot_view: SlotView, scale: float) -> int:
    """Shortest source side needed to draw a slot at the capture scale."""
    box = slot_view.image_box
    return int(math.ceil(max(box.width, box.height) * scale * ZOOM_HEADROOM))


async def _load_one(
    loader: AssetLoader,
    handle_id: str,
    data: bytes,
    min_side: int,
    timeout: float,
) -> Tuple[str, object]:
    try:
        asset = await asyncio.wait_for(
            loader.load(handle_id, data, needed_min_side=min_side),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        return handle_id, asyncio.TimeoutError()
    except AssetLoadError as e:
        return handle_id, e
    except Exception as e:
        logger.exception(f"Loader raised unexpectedly for {handle_id}")
        return handle_id, AssetLoadError(f"Unexpected loader failure: {e}")
    return handle_id, asset


async def wait_for_assets(
    snapshot: DocumentSnapshot,
    views: Sequence[PageView],
    loader: AssetLoader,
    *,
    timeout: float,
    scale: float,
) -> AssetReadiness:
    """
    Decode every image the views draw.

    Args:
        snapshot: Snapshot holding the image bytes
        views: Print-mode page views (decide which images and at what size)
        loader: Async decoder
        timeout: Per-image timeout in seconds
        scale: Capture scale (sizes the decode)

    Returns:
        AssetReadiness with ready bitmaps and degraded pages
    """
    start = time.perf_counter()
    readiness = AssetReadiness()

    pages_by_handle: Dict[str, List[int]] = {}
    min_sides: Dict[str, int] = {}
    for page_number, view in enumerate(views, start=1):
        for slot_view in view.slots:
            if slot_view.image is None:
                continue
            handle_id = slot_view.image.handle_id
            pages_by_handle.setdefault(handle_id, []).append(page_number)
            min_sides[handle_id] = max(min_sides.get(handle_id, 0), needed_min_side(slot_view, scale))

    jobs = []
    for handle_id, pages in pages_by_handle.items():
        data = snapshot.image_data.get(handle_id)
        if data is None:
            readiness.degraded_pages.update(pages)
            continue
        jobs.append(_load_one(loader, handle_id, data, min_sides[handle_id], timeout))

    for handle_id, outcome in await asyncio.gather(*jobs):
        pages = pages_by_handle[handle_id]
        if isinstance(outcome, asyncio.TimeoutError):
            logger.warning(f"Image {handle_id} not ready after {timeout:.1f}s; page(s) {pages} degraded")
            readiness.timed_out.add(handle_id)
            readiness.degraded_pages.update(pages)
        elif isinstance(outcome, AssetLoadError):
            logger.warning(f"Image {handle_id} failed to decode: {outcome}; page(s) {pages} degraded")
            readiness.degraded_pages.update(pages)
        elif not outcome.is_ready:
            logger.warning(f"Image {handle_id} decoded with no pixels; page(s) {pages} degraded")
            readiness.degraded_pages.update(pages)
        else:
            readiness.bitmaps[handle_id] = outcome.image

    elapsed = time.perf_counter() - start
    logger.info(
        f"Assets ready: {len(readiness.bitmaps)}/{len(pages_by_handle)} "
        f"in {elapsed:.2f}s ({len(readiness.degraded_pages)} degraded page(s))"
    )
    return readiness
