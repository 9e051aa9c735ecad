"""
Tests for fit, rotation and crop geometry.

The sample image is 200x100 with a red left half and a blue right half.
"""

import pytest

from photosheet.core.models import CropBox, FitMode
from photosheet.images import (
    apply_crop,
    compute_cover_crop,
    cover_box,
    fit_into_box,
    reduce_for_box,
    rotate_quarter,
    rotated_size,
)

RED = (255, 0, 0)
BLUE = (0, 0, 255)


def _close(actual, expected, tolerance=40):
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


class TestRotateQuarter:
    """Tests for rotate_quarter()."""

    def test_rotate_quarter_when_90_then_left_half_moves_to_top(self, sample_image):
        # Act
        rotated = rotate_quarter(sample_image, 90)

        # Assert
        assert rotated.size == (100, 200)
        assert _close(rotated.getpixel((50, 10)), RED)
        assert _close(rotated.getpixel((50, 190)), BLUE)

    def test_rotate_quarter_when_270_then_left_half_moves_to_bottom(self, sample_image):
        rotated = rotate_quarter(sample_image, 270)

        assert _close(rotated.getpixel((50, 190)), RED)

    def test_rotate_quarter_when_zero_then_same_image(self, sample_image):
        assert rotate_quarter(sample_image, 0) is sample_image

    def test_rotate_quarter_when_not_quarter_turn_then_raises(self, sample_image):
        with pytest.raises(ValueError):
            rotate_quarter(sample_image, 45)

    def test_rotated_size_when_quarter_turn_then_swaps(self):
        assert rotated_size((200, 100), 90) == (100, 200)
        assert rotated_size((200, 100), 180) == (200, 100)


class TestCoverGeometry:
    """Tests for cover_box() and compute_cover_crop()."""

    def test_cover_box_when_wide_source_then_crops_sides(self):
        assert cover_box((400, 200), (100, 100)) == (100.0, 0.0, 300.0, 200.0)

    def test_cover_box_when_tall_source_then_crops_top_and_bottom(self):
        assert cover_box((100, 400), (100, 100)) == (0.0, 150.0, 100.0, 250.0)

    def test_cover_box_when_zero_size_then_raises(self):
        with pytest.raises(ValueError):
            cover_box((0, 100), (10, 10))

    def test_compute_cover_crop_when_square_box_then_centred_normalized(self):
        # Act
        crop = compute_cover_crop((200, 100), (100, 100))

        # Assert
        assert crop == CropBox(0.25, 0.0, 0.75, 1.0, rotation=0)

    def test_compute_cover_crop_when_zoomed_in_then_narrows_around_centre(self):
        crop = compute_cover_crop((200, 100), (100, 100), scale=2.0)

        assert crop.left == pytest.approx(0.375)
        assert crop.right == pytest.approx(0.625)
        assert crop.top == pytest.approx(0.25)
        assert crop.bottom == pytest.approx(0.75)

    def test_compute_cover_crop_when_zoomed_out_then_same_as_unzoomed(self):
        assert compute_cover_crop((200, 100), (100, 100), scale=0.5) == compute_cover_crop(
            (200, 100), (100, 100)
        )

    def test_compute_cover_crop_when_rotated_then_relative_to_rotated_source(self):
        crop = compute_cover_crop((200, 100), (100, 100), rotation=90)

        assert crop == CropBox(0.0, 0.25, 1.0, 0.75, rotation=90)

    def test_apply_crop_when_left_half_then_only_red(self, sample_image):
        cropped = apply_crop(sample_image, CropBox(0.0, 0.0, 0.5, 1.0))

        assert cropped.size == (100, 100)
        assert _close(cropped.getpixel((90, 50)), RED)

    def test_apply_crop_when_resolution_changes_then_same_region(self, sample_image):
        # Arrange
        crop = compute_cover_crop(sample_image.size, (100, 100))
        large = sample_image.resize((800, 400))

        # Act
        small_cut = apply_crop(sample_image, crop)
        large_cut = apply_crop(large, crop)

        # Assert
        assert large_cut.size == (small_cut.width * 4, small_cut.height * 4)


class TestFitIntoBox:
    """Tests for fit_into_box()."""

    def test_fit_into_box_when_fill_then_stretches_to_exact_size(self, sample_image):
        fitted = fit_into_box(sample_image, (50, 80), FitMode.FILL)

        assert fitted.size == (50, 80)
        assert _close(fitted.getpixel((5, 40)), RED)
        assert _close(fitted.getpixel((45, 40)), BLUE)

    def test_fit_into_box_when_cover_then_keeps_centre(self, sample_image):
        fitted = fit_into_box(sample_image, (100, 100), FitMode.COVER)

        assert fitted.size == (100, 100)
        assert _close(fitted.getpixel((10, 50)), RED)
        assert _close(fitted.getpixel((90, 50)), BLUE)

    def test_fit_into_box_when_zero_box_then_one_pixel(self, sample_image):
        assert fit_into_box(sample_image, (0, 0), FitMode.FILL).size == (1, 1)


class TestReduceForBox:
    def test_reduce_for_box_when_larger_than_needed_then_downsamples(self, sample_image):
        assert reduce_for_box(sample_image, 50).size == (100, 50)

    def test_reduce_for_box_when_already_small_then_unchanged(self, sample_image):
        assert reduce_for_box(sample_image, 500) is sample_image
        assert reduce_for_box(sample_image, 0) is sample_image
