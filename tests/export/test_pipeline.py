"""
Tests for the export state machine.

Runs use QualityTier.LOW at device pixel ratio 0.5 (capture scale 1.0)
to keep rasterization cheap.
"""

import asyncio
import io
import time

import pytest
from pypdf import PdfReader

from photosheet.export import (
    ExportError,
    ExportFormat,
    ExportInProgressError,
    ExportOptions,
    ExportPipeline,
    ExportState,
    OffscreenSurface,
    QualityTier,
    SaveTarget,
)
from photosheet.images import AssetLoader, PillowAssetLoader
from photosheet.notifications import NotificationChannel, NotificationLevel
from photosheet.output import render_page

PDF = ExportOptions(format=ExportFormat.PDF, quality=QualityTier.LOW, device_pixel_ratio=0.5)
JPEG = ExportOptions(format=ExportFormat.JPEG, quality=QualityTier.LOW, device_pixel_ratio=0.5)

FULL_RUN = (
    ExportState.PREPARING,
    ExportState.WAITING_FOR_ASSETS,
    ExportState.NORMALIZING,
    ExportState.CAPTURING,
    ExportState.COMPOSING,
    ExportState.PERSISTING,
    ExportState.DONE,
)


class MemoryGateway:
    """In-memory gateway with scripted save-dialog answers."""

    supports_save_target = True

    def __init__(self, answers=None, write_ok=True, download_ok=True):
        self.answers = list(answers or [])
        self.write_ok = write_ok
        self.download_ok = download_ok
        self.written = {}
        self.downloads = {}

    async def request_save_target(self, suggested_filename, mime):
        if self.answers:
            answer = self.answers.pop(0)
            if answer is None:
                return None
        return SaveTarget(filename=suggested_filename, location=f"memory://{suggested_filename}")

    async def write(self, target, data):
        if not self.write_ok:
            return False
        self.written[target.filename] = data
        return True

    async def offer_download(self, filename, data):
        if not self.download_ok:
            return False
        self.downloads[filename] = data
        return True


class NeverLoader(AssetLoader):
    async def load(self, handle_id, data, *, needed_min_side=0):
        await asyncio.sleep(3600)


class BrokenLoader(AssetLoader):
    async def load(self, handle_id, data, *, needed_min_side=0):
        raise RuntimeError("decoder crashed")


class FailAfterGateway(MemoryGateway):
    """Gateway whose writes and downloads fail after the first delivered files."""

    def __init__(self, deliver_count):
        super().__init__()
        self.deliver_count = deliver_count

    async def write(self, target, data):
        if len(self.written) >= self.deliver_count:
            return False
        return await super().write(target, data)

    async def offer_download(self, filename, data):
        return False


class SlowLoader(PillowAssetLoader):
    async def load(self, handle_id, data, *, needed_min_side=0):
        await asyncio.sleep(0.05)
        return await super().load(handle_id, data, needed_min_side=needed_min_side)


class SpySurface(OffscreenSurface):
    instances = []

    def __init__(self, document, geometry=None):
        super().__init__(document, geometry)
        self.dispose_calls = 0
        SpySurface.instances.append(self)

    def dispose(self):
        self.dispose_calls += 1
        super().dispose()


class ExplodingSurface(SpySurface):
    def mount(self):
        raise RuntimeError("render tree exploded")


@pytest.fixture(autouse=True)
def _reset_spies():
    SpySurface.instances = []
    yield
    SpySurface.instances = []


def _populate(store, png_bytes, pages=1, template="twoCut-portrait", **metadata):
    """Fill every slot of every page with the sample image."""
    store.set_template(template)
    for index in range(pages):
        if index:
            store.add_page()
        page = store.document.current_page
        if metadata:
            store.update_page_metadata(page.id, **metadata)
        for slot in page.slots:
            ref = store.registry.register(png_bytes, "photo.png", "image/png")
            store.set_slot_image(page.id, slot.id, ref)
    return store


def _run(pipeline, store, options):
    return asyncio.run(pipeline.run(store.document, store.registry, options))


class TestSuccessfulRuns:
    """Tests for complete runs."""

    def test_run_when_pdf_then_single_file_named_from_first_page(self, store, png_bytes):
        # Arrange
        _populate(store, png_bytes, pages=3, title="Survey", project_name="Bridge")
        gateway = MemoryGateway()
        pipeline = ExportPipeline(gateway)

        # Act
        result = _run(pipeline, store, PDF)

        # Assert
        assert result.state is ExportState.DONE
        assert result.transitions == FULL_RUN
        assert list(gateway.written) == ["Survey(Bridge).pdf"]
        reader = PdfReader(io.BytesIO(gateway.written["Survey(Bridge).pdf"]))
        assert len(reader.pages) == 3

    def test_run_when_jpeg_multi_page_then_one_file_per_page(self, store, png_bytes):
        _populate(store, png_bytes, pages=3, title="Survey")
        gateway = MemoryGateway()

        result = _run(ExportPipeline(gateway), store, JPEG)

        assert [f.filename for f in result.files] == [
            "Survey_page1.jpg",
            "Survey_page2.jpg",
            "Survey_page3.jpg",
        ]
        assert not any(name.endswith(".pdf") for name in gateway.written)

    def test_run_when_jpeg_single_page_then_no_page_suffix(self, store, png_bytes):
        _populate(store, png_bytes, title="Survey")
        gateway = MemoryGateway()

        result = _run(ExportPipeline(gateway), store, JPEG)

        assert [f.filename for f in result.files] == ["Survey.jpg"]

    def test_run_when_jpeg_then_pixel_size_follows_capture_scale(self, store, png_bytes):
        from PIL import Image

        _populate(store, png_bytes, title="Survey")
        gateway = MemoryGateway()
        options = ExportOptions(format=ExportFormat.JPEG, quality=QualityTier.LOW, device_pixel_ratio=1.0)

        _run(ExportPipeline(gateway), store, options)

        with Image.open(io.BytesIO(gateway.written["Survey.jpg"])) as page:
            assert page.size == (794 * 2, 1123 * 2)

    def test_run_when_progress_callback_then_called_per_page(self, store, png_bytes):
        _populate(store, png_bytes, pages=3)
        progress = []

        _run(ExportPipeline(MemoryGateway(), on_progress=lambda done, total: progress.append((done, total))), store, PDF)

        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_run_when_done_then_success_notified(self, store, png_bytes):
        _populate(store, png_bytes)
        channel = NotificationChannel()

        _run(ExportPipeline(MemoryGateway(), channel.notify), store, PDF)

        assert channel.history[-1].level is NotificationLevel.SUCCESS


class TestDegradedAndFailedPages:
    """Tests for asset timeouts and capture failures."""

    def test_run_when_images_never_load_then_done_with_degraded_pages(self, store, png_bytes):
        # Arrange
        _populate(store, png_bytes, pages=2)
        options = ExportOptions(
            format=ExportFormat.PDF,
            quality=QualityTier.LOW,
            device_pixel_ratio=0.5,
            asset_timeout=0.05,
        )
        channel = NotificationChannel()
        gateway = MemoryGateway()

        # Act
        result = _run(ExportPipeline(gateway, channel.notify, loader=NeverLoader()), store, options)

        # Assert
        assert result.state is ExportState.DONE
        assert result.degraded_pages == (1, 2)
        assert result.is_partial
        assert len(gateway.written) == 1
        assert any(n.level is NotificationLevel.WARNING for n in channel.history)

    def test_run_when_decode_slower_than_timeout_then_page_degraded(self, store, png_bytes, monkeypatch):
        # Arrange
        _populate(store, png_bytes)
        decode = PillowAssetLoader._decode

        def slow_decode(data, needed_min_side):
            time.sleep(0.5)
            return decode(data, needed_min_side)

        monkeypatch.setattr(PillowAssetLoader, "_decode", staticmethod(slow_decode))
        options = ExportOptions(
            format=ExportFormat.PDF,
            quality=QualityTier.LOW,
            device_pixel_ratio=0.5,
            asset_timeout=0.05,
        )
        gateway = MemoryGateway()

        # Act
        result = _run(ExportPipeline(gateway), store, options)

        # Assert
        assert result.state is ExportState.DONE
        assert result.degraded_pages == (1,)
        assert len(gateway.written) == 1

    def test_run_when_loader_raises_unexpectedly_then_page_degraded(self, store, png_bytes):
        _populate(store, png_bytes, pages=2)

        result = _run(ExportPipeline(MemoryGateway(), loader=BrokenLoader()), store, JPEG)

        assert result.state is ExportState.DONE
        assert result.degraded_pages == (1, 2)
        assert len(result.files) == 2

    def test_run_when_one_page_fails_capture_then_others_exported(self, store, png_bytes):
        _populate(store, png_bytes, pages=3)
        calls = []

        def flaky(view, bitmaps, scale):
            calls.append(view.page_id)
            if len(calls) == 2:
                raise RuntimeError("out of memory")
            return render_page(view, bitmaps, scale)

        result = _run(ExportPipeline(MemoryGateway(), rasterize=flaky, surface_factory=SpySurface), store, JPEG)

        assert result.state is ExportState.DONE
        assert result.failed_pages == (2,)
        assert [f.filename.endswith(("_page1.jpg", "_page3.jpg")) for f in result.files] == [True, True]
        assert SpySurface.instances[0].dispose_calls == 1

    def test_run_when_every_page_fails_then_failed(self, store, png_bytes):
        _populate(store, png_bytes)

        def broken(view, bitmaps, scale):
            raise RuntimeError("no canvas")

        result = _run(ExportPipeline(MemoryGateway(), rasterize=broken, surface_factory=SpySurface), store, PDF)

        assert result.state is ExportState.FAILED
        assert result.error == "No page could be captured."
        assert SpySurface.instances[0].dispose_calls == 1


class TestSurfaceLifecycle:
    """The off-screen surface is disposed exactly once on every path."""

    def test_dispose_when_success_then_once(self, store, png_bytes):
        _populate(store, png_bytes)

        _run(ExportPipeline(MemoryGateway(), surface_factory=SpySurface), store, PDF)

        assert [s.dispose_calls for s in SpySurface.instances] == [1]

    def test_dispose_when_unexpected_exception_then_once_and_failed(self, store, png_bytes):
        _populate(store, png_bytes)
        channel = NotificationChannel()

        result = _run(ExportPipeline(MemoryGateway(), channel.notify, surface_factory=ExplodingSurface), store, PDF)

        assert result.state is ExportState.FAILED
        assert "render tree exploded" in result.error
        assert [s.dispose_calls for s in SpySurface.instances] == [1]
        assert channel.history[-1].level is NotificationLevel.ERROR

    def test_dispose_when_cancelled_then_once(self, store, png_bytes):
        _populate(store, png_bytes)

        _run(ExportPipeline(MemoryGateway(answers=[None]), surface_factory=SpySurface), store, PDF)

        assert [s.dispose_calls for s in SpySurface.instances] == [1]


class TestPersisting:
    """Tests for cancellation and fallback delivery."""

    def test_run_when_first_save_cancelled_then_cancelled(self, store, png_bytes):
        _populate(store, png_bytes, pages=2)
        gateway = MemoryGateway(answers=[None])

        result = _run(ExportPipeline(gateway), store, JPEG)

        assert result.state is ExportState.CANCELLED
        assert gateway.written == {}
        assert result.files == ()

    def test_run_when_later_save_cancelled_then_file_skipped(self, store, png_bytes):
        _populate(store, png_bytes, pages=3, title="Survey")
        gateway = MemoryGateway(answers=["ok", None, "ok"])

        result = _run(ExportPipeline(gateway), store, JPEG)

        assert result.state is ExportState.DONE
        assert result.skipped_files == ("Survey_page2.jpg",)
        assert sorted(gateway.written) == ["Survey_page1.jpg", "Survey_page3.jpg"]

    def test_run_when_write_fails_then_fallback_download(self, store, png_bytes):
        _populate(store, png_bytes, title="Survey")
        gateway = MemoryGateway(write_ok=False)

        result = _run(ExportPipeline(gateway), store, PDF)

        assert result.state is ExportState.DONE
        assert result.files[0].via_fallback
        assert list(gateway.downloads) == ["Survey.pdf"]

    def test_run_when_no_save_target_support_then_download(self, store, png_bytes):
        _populate(store, png_bytes, title="Survey")
        gateway = MemoryGateway()
        gateway.supports_save_target = False

        result = _run(ExportPipeline(gateway), store, PDF)

        assert result.files[0].via_fallback
        assert gateway.written == {}

    def test_run_when_write_and_fallback_fail_then_failed(self, store, png_bytes):
        _populate(store, png_bytes)

        result = _run(ExportPipeline(MemoryGateway(write_ok=False, download_ok=False)), store, PDF)

        assert result.state is ExportState.FAILED
        assert "Could not save" in result.error

    def test_run_when_later_file_cannot_be_saved_then_failed_result_lists_delivered(self, store, png_bytes):
        # Arrange
        _populate(store, png_bytes, pages=2, title="Survey")
        gateway = FailAfterGateway(deliver_count=1)
        channel = NotificationChannel()

        # Act
        result = _run(ExportPipeline(gateway, channel.notify), store, JPEG)

        # Assert
        assert result.state is ExportState.FAILED
        assert list(gateway.written) == ["Survey_page1.jpg"]
        assert [f.filename for f in result.files] == ["Survey_page1.jpg"]
        assert "Already saved: Survey_page1.jpg" in channel.history[-1].message


class TestConcurrencyAndSnapshots:
    """Tests for run exclusivity and snapshot isolation."""

    def test_run_when_already_running_then_rejected(self, store, png_bytes):
        # Arrange
        _populate(store, png_bytes)
        pipeline = ExportPipeline(MemoryGateway(), loader=SlowLoader())

        async def scenario():
            return await asyncio.gather(
                pipeline.run(store.document, store.registry, PDF),
                pipeline.run(store.document, store.registry, PDF),
                return_exceptions=True,
            )

        # Act
        first, second = asyncio.run(scenario())

        # Assert
        assert first.state is ExportState.DONE
        assert isinstance(second, ExportInProgressError)
        assert not pipeline.is_running

    def test_run_when_document_edited_mid_run_then_snapshot_exported(self, store, png_bytes):
        # Arrange
        _populate(store, png_bytes, pages=2, title="Survey")
        gateway = MemoryGateway()
        pipeline = ExportPipeline(gateway, loader=SlowLoader())

        async def edit_while_running():
            await asyncio.sleep(0)
            page = store.document.pages[0]
            store.remove_slot_image(page.id, page.slots[0].id)
            store.delete_page(store.document.pages[1].id)
            store.update_page_metadata(page.id, title="Renamed")

        async def scenario():
            result, _ = await asyncio.gather(
                pipeline.run(store.document, store.registry, JPEG),
                edit_while_running(),
            )
            return result

        # Act
        result = asyncio.run(scenario())

        # Assert
        assert result.state is ExportState.DONE
        assert result.degraded_pages == ()
        assert [f.filename for f in result.files] == ["Survey_page1.jpg", "Survey_page2.jpg"]
        assert store.document.page_count == 1

    def test_run_when_no_document_then_raises(self, store):
        with pytest.raises(ExportError):
            asyncio.run(ExportPipeline(MemoryGateway()).run(None, store.registry, PDF))
