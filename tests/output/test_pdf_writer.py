"""
Tests for PDF composition and JPEG encoding.
"""

import io

import pytest
from PIL import Image
from pypdf import PdfReader

from photosheet.core.models import Orientation, PageMetadata
from photosheet.output import EncodedPage, compose_pdf, encode_jpeg, pdf_metadata

METADATA = PageMetadata(title="Survey", project_name="Bridge", sub_project_name="Pier 2")


def _pages(count, size=(794, 1123)):
    data = encode_jpeg(Image.new("RGB", size, "white"), 70)
    return [EncodedPage(page_number=i + 1, data=data, size=size) for i in range(count)]


class TestEncodeJpeg:
    def test_encode_jpeg_when_rgba_then_converted(self):
        data = encode_jpeg(Image.new("RGBA", (10, 10)), 60)

        with Image.open(io.BytesIO(data)) as decoded:
            assert decoded.format == "JPEG"
            assert decoded.mode == "RGB"

    @pytest.mark.parametrize("quality", [0, 96])
    def test_encode_jpeg_when_quality_out_of_range_then_raises(self, quality):
        with pytest.raises(ValueError):
            encode_jpeg(Image.new("RGB", (4, 4)), quality)


class TestPdfMetadata:
    def test_pdf_metadata_when_all_fields_then_derived(self):
        assert pdf_metadata(METADATA) == {
            "title": "Survey - Bridge",
            "subject": "Sub-project: Pier 2",
            "author": "Pier 2",
            "creator": "photosheet",
        }

    def test_pdf_metadata_when_no_project_then_title_only(self):
        info = pdf_metadata(PageMetadata(title="Survey"))

        assert info["title"] == "Survey"
        assert info["subject"] == ""


class TestComposePdf:
    """Tests for compose_pdf()."""

    def test_compose_pdf_when_portrait_then_a4_pages(self):
        # Act
        data = compose_pdf(_pages(3), Orientation.PORTRAIT, METADATA, total_pages=3)

        # Assert
        reader = PdfReader(io.BytesIO(data))
        assert len(reader.pages) == 3
        box = reader.pages[0].mediabox
        assert float(box.width) == pytest.approx(595.28, abs=0.1)
        assert float(box.height) == pytest.approx(841.89, abs=0.1)

    def test_compose_pdf_when_landscape_then_wide_pages(self):
        data = compose_pdf(_pages(1, (1123, 794)), Orientation.LANDSCAPE, METADATA, total_pages=1)

        box = PdfReader(io.BytesIO(data)).pages[0].mediabox
        assert float(box.width) == pytest.approx(841.89, abs=0.1)

    def test_compose_pdf_when_written_then_document_info_set(self):
        data = compose_pdf(_pages(1), Orientation.PORTRAIT, METADATA, total_pages=1)

        info = PdfReader(io.BytesIO(data)).metadata
        assert info.title == "Survey - Bridge"
        assert info.author == "Pier 2"
        assert info.subject == "Sub-project: Pier 2"
        assert info.creator == "photosheet"

    def test_compose_pdf_when_multi_page_then_footer_numbers(self):
        data = compose_pdf(_pages(2), Orientation.PORTRAIT, METADATA, total_pages=2)

        reader = PdfReader(io.BytesIO(data))
        assert "1 / 2" in reader.pages[0].extract_text()
        assert "2 / 2" in reader.pages[1].extract_text()

    def test_compose_pdf_when_single_page_then_no_footer(self):
        data = compose_pdf(_pages(1), Orientation.PORTRAIT, METADATA, total_pages=1)

        assert "1 / 1" not in PdfReader(io.BytesIO(data)).pages[0].extract_text()
