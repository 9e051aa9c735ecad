"""
Tests for the off-screen surface and the asset readiness wait.
"""

import asyncio
import logging

import pytest

from photosheet.core.models import Document, Page, Slot, Template
from photosheet.export import DocumentSnapshot, OffscreenSurface, SurfaceDisposedError, wait_for_assets
from photosheet.images import AssetLoader, LoadedAsset, PillowAssetLoader
from photosheet.layout import RenderMode, find_affordances, project_page


class _InteractiveLeakSurface(OffscreenSurface):
    """Surface whose projection wrongly keeps editing controls."""

    def _layout_pass(self):
        self.layout_passes += 1
        return tuple(
            project_page(page, self.document.template, mode=RenderMode.INTERACTIVE, geometry=self.geometry)
            for page in self.document.pages
        )


class _EmptyLoader(AssetLoader):
    async def load(self, handle_id, data, *, needed_min_side=0):
        await asyncio.sleep(0)
        return LoadedAsset(handle_id=handle_id, image=None, natural_size=(0, 0))


def _custom_document(slot_count=2):
    page = Page(slots=tuple(Slot() for _ in range(slot_count)))
    return Document(Template.parse("custom-landscape"), (page, Page()))


class TestOffscreenSurface:
    """Tests for OffscreenSurface."""

    def test_mount_when_called_then_print_views_at_print_width(self):
        # Arrange
        surface = OffscreenSurface(_custom_document())

        # Act
        surface.mount()

        # Assert
        assert surface.detached and not surface.interactive
        assert surface.container_width == 1123
        assert len(surface.views) == 2
        assert all(view.mode is RenderMode.PRINT for view in surface.views)
        assert all(find_affordances(view) == [] for view in surface.views)

    def test_wait_until_settled_when_stable_then_true_after_one_more_pass(self):
        surface = OffscreenSurface(_custom_document())
        surface.mount()

        settled = asyncio.run(surface.wait_until_settled(4))

        assert settled
        assert surface.layout_passes == 2

    def test_normalize_when_affordances_leak_then_stripped(self):
        surface = _InteractiveLeakSurface(_custom_document())
        surface.mount()

        removed = surface.normalize()

        assert removed > 0
        assert all(find_affordances(view) == [] for view in surface.views)

    def test_normalize_when_print_views_then_nothing_removed(self):
        surface = OffscreenSurface(_custom_document())
        surface.mount()

        assert surface.normalize() == 0

    def test_dispose_when_called_then_views_unavailable(self):
        surface = OffscreenSurface(_custom_document())
        surface.mount()

        surface.dispose()

        assert surface.disposed
        with pytest.raises(SurfaceDisposedError):
            _ = surface.views

    def test_dispose_when_called_twice_then_warns(self, caplog):
        surface = OffscreenSurface(_custom_document())
        surface.dispose()

        with caplog.at_level(logging.WARNING, logger="photosheet.export.offscreen"):
            surface.dispose()

        assert "disposed twice" in caplog.text

    def test_handle_interaction_when_called_then_ignored(self):
        surface = OffscreenSurface(_custom_document())

        assert surface.handle_interaction("click", slot_id="x") is None


class TestWaitForAssets:
    """Tests for wait_for_assets()."""

    def _snapshot(self, store, payloads):
        store.set_template("fourCut-portrait")
        page = store.document.current_page
        for slot, data in zip(page.slots, payloads):
            ref = store.registry.register(data, "photo", "image/png")
            store.set_slot_image(page.id, slot.id, ref)
        return DocumentSnapshot.capture(store.document, store.registry)

    def _views(self, snapshot):
        surface = OffscreenSurface(snapshot.document)
        surface.mount()
        return surface.views

    def test_wait_when_images_decode_then_bitmaps_bounded(self, store, png_bytes):
        # Arrange
        snapshot = self._snapshot(store, [png_bytes, png_bytes])
        views = self._views(snapshot)

        # Act
        readiness = asyncio.run(
            wait_for_assets(snapshot, views, PillowAssetLoader(), timeout=5, scale=0.1)
        )

        # Assert
        assert len(readiness.bitmaps) == 2
        assert readiness.degraded_pages == set()
        assert all(min(b.size) <= 100 for b in readiness.bitmaps.values())

    def test_wait_when_bytes_undecodable_then_page_degraded(self, store, png_bytes):
        snapshot = self._snapshot(store, [png_bytes, b"junk"])

        readiness = asyncio.run(
            wait_for_assets(snapshot, self._views(snapshot), PillowAssetLoader(), timeout=5, scale=1)
        )

        assert len(readiness.bitmaps) == 1
        assert readiness.degraded_pages == {1}

    def test_wait_when_decode_yields_no_pixels_then_not_ready(self, store, png_bytes):
        snapshot = self._snapshot(store, [png_bytes])

        readiness = asyncio.run(
            wait_for_assets(snapshot, self._views(snapshot), _EmptyLoader(), timeout=5, scale=1)
        )

        assert readiness.bitmaps == {}
        assert readiness.degraded_pages == {1}

    def test_wait_when_handle_released_before_snapshot_then_degraded(self, store, png_bytes):
        self._snapshot(store, [png_bytes])
        ref = store.document.current_page.slots[0].image
        store.registry.revoke(ref.handle_id)

        snapshot = DocumentSnapshot.capture(store.document, store.registry)
        readiness = asyncio.run(
            wait_for_assets(snapshot, self._views(snapshot), PillowAssetLoader(), timeout=5, scale=1)
        )

        assert readiness.degraded_pages == {1}

    def test_release_when_called_then_bitmaps_dropped(self, store, png_bytes):
        snapshot = self._snapshot(store, [png_bytes])
        readiness = asyncio.run(
            wait_for_assets(snapshot, self._views(snapshot), PillowAssetLoader(), timeout=5, scale=1)
        )

        readiness.release()

        assert readiness.bitmaps == {}
