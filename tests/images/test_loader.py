"""
Tests for the Pillow asset loader.
"""

import asyncio
import io
import threading

import pytest
from PIL import Image

from photosheet.images import AssetLoadError, LoadedAsset, PillowAssetLoader


def encode_image(img, fmt, **params):
    buf = io.BytesIO()
    img.save(buf, format=fmt, **params)
    return buf.getvalue()


def _load(data, needed_min_side=0):
    return asyncio.run(PillowAssetLoader().load("h1", data, needed_min_side=needed_min_side))


class TestPillowAssetLoader:
    """Tests for PillowAssetLoader.load()."""

    def test_load_when_png_then_ready_at_full_size(self, png_bytes):
        # Act
        asset = _load(png_bytes)

        # Assert
        assert asset.is_ready
        assert asset.handle_id == "h1"
        assert asset.natural_size == (200, 100)
        assert asset.image.size == (200, 100)

    def test_load_when_needed_side_small_then_reduced_but_natural_size_kept(self, jpeg_bytes):
        asset = _load(jpeg_bytes, needed_min_side=20)

        assert asset.natural_size == (200, 100)
        assert min(asset.image.size) == 20

    def test_load_when_exif_rotated_then_oriented_and_swapped(self, sample_image):
        # Arrange
        exif = Image.Exif()
        exif[0x0112] = 6
        data = encode_image(sample_image, "JPEG", exif=exif)

        # Act
        asset = _load(data)

        # Assert
        assert asset.natural_size == (100, 200)
        assert asset.image.size == (100, 200)

    def test_load_when_rgba_png_then_keeps_alpha(self):
        data = encode_image(Image.new("RGBA", (10, 10), (0, 0, 0, 0)), "PNG")

        assert _load(data).image.mode == "RGBA"

    def test_load_when_not_an_image_then_raises(self):
        with pytest.raises(AssetLoadError):
            _load(b"definitely not an image")

    def test_load_when_pixel_count_exceeds_limit_then_raises(self, monkeypatch):
        data = encode_image(Image.new("RGB", (100, 100), "white"), "PNG")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        with pytest.raises(AssetLoadError):
            _load(data)

    def test_load_when_called_then_decodes_off_event_loop_thread(self, png_bytes, monkeypatch):
        # Arrange
        decode = PillowAssetLoader._decode
        decode_threads = []

        def recording_decode(data, needed_min_side):
            decode_threads.append(threading.get_ident())
            return decode(data, needed_min_side)

        monkeypatch.setattr(PillowAssetLoader, "_decode", staticmethod(recording_decode))

        # Act
        asset = _load(png_bytes)

        # Assert
        assert asset.is_ready
        assert decode_threads and decode_threads[0] != threading.get_ident()


class TestLoadedAsset:
    def test_is_ready_when_no_bitmap_then_false(self):
        assert not LoadedAsset("h", None, (10, 10)).is_ready

    def test_is_ready_when_zero_size_then_false(self):
        assert not LoadedAsset("h", Image.new("RGB", (1, 1)), (0, 0)).is_ready
