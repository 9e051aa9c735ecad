"""
Tests for upload validation.
"""

import io

import pytest
from PIL import Image

from photosheet.editor import MAX_UPLOAD_BYTES, ImageValidationError, validate_image_upload


def _encode(fmt, mode="RGB"):
    buf = io.BytesIO()
    Image.new(mode, (8, 8), "white").save(buf, format=fmt)
    return buf.getvalue()


class TestValidateImageUpload:
    """Tests for validate_image_upload()."""

    @pytest.mark.parametrize("fmt, mime", [("JPEG", "image/jpeg"), ("PNG", "image/png"), ("WEBP", "image/webp")])
    def test_validate_when_allowed_format_then_returns_mime(self, fmt, mime):
        assert validate_image_upload(_encode(fmt), "photo") == mime

    def test_validate_when_extension_lies_then_sniffed_format_wins(self, png_bytes):
        assert validate_image_upload(png_bytes, "photo.jpg") == "image/png"

    @pytest.mark.parametrize("fmt", ["GIF", "BMP"])
    def test_validate_when_other_image_format_then_rejected(self, fmt):
        with pytest.raises(ImageValidationError, match="only JPEG, PNG and WEBP"):
            validate_image_upload(_encode(fmt, mode="P" if fmt == "GIF" else "RGB"), "x")

    def test_validate_when_not_an_image_then_rejected(self):
        with pytest.raises(ImageValidationError, match="not a supported image"):
            validate_image_upload(b"%PDF-1.7 ...", "report.pdf")

    def test_validate_when_empty_then_rejected(self):
        with pytest.raises(ImageValidationError, match="empty"):
            validate_image_upload(b"", "empty.jpg")

    def test_validate_when_over_ceiling_then_rejected_before_decoding(self):
        data = b"\xff\xd8" + b"\x00" * MAX_UPLOAD_BYTES

        with pytest.raises(ImageValidationError, match="15 MB"):
            validate_image_upload(data, "huge.jpg")

    def test_validate_when_exactly_at_ceiling_then_size_accepted(self, jpeg_bytes):
        data = jpeg_bytes + b"\x00" * (MAX_UPLOAD_BYTES - len(jpeg_bytes))

        assert validate_image_upload(data, "big.jpg") == "image/jpeg"

    def test_validate_when_pixel_count_exceeds_limit_then_rejected(self, monkeypatch):
        data = _encode("PNG")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 20)

        with pytest.raises(ImageValidationError, match="too many pixels"):
            validate_image_upload(data, "panorama.png")

    def test_validate_when_png_truncated_then_rejected(self, png_bytes):
        # Drops the final checksum and the end chunk
        truncated = png_bytes[:-16]

        with pytest.raises(ImageValidationError, match="not a supported image"):
            validate_image_upload(truncated, "cut.png")
