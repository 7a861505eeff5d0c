"""
Tests for image operations.
"""

import numpy as np
import pytest
from PIL import Image

from regionocr.layout.box import Rectangle
from regionocr.ocr.preprocessor import (
    RED,
    binarize,
    channel_set,
    crop,
    draw_rectangles,
    ensure_color,
    image_bounds,
    normalize_color,
    to_grayscale,
    to_numpy,
)


class TestNormalizeColor:
    """Tests for 1/3/4 channel normalization."""

    def test_gray_expanded(self):
        gray = np.full((10, 20), 77, dtype=np.uint8)
        result = normalize_color(gray)
        assert result.shape == (10, 20, 3)
        assert (result == 77).all()

    def test_single_channel_3d_expanded(self):
        gray = np.full((10, 20, 1), 5, dtype=np.uint8)
        assert normalize_color(gray).shape == (10, 20, 3)

    def test_alpha_dropped(self):
        bgra = np.zeros((4, 4, 4), dtype=np.uint8)
        bgra[..., 0] = 10
        bgra[..., 3] = 255
        result = normalize_color(bgra)
        assert result.shape == (4, 4, 3)
        assert (result[..., 0] == 10).all()

    def test_color_is_copied(self, color_image):
        result = normalize_color(color_image)
        assert result is not color_image
        result[:] = 0
        assert color_image.max() == 200

    def test_pil_rgb_converted_to_bgr(self):
        pil = Image.new('RGB', (3, 2), (255, 0, 0))
        result = normalize_color(pil)
        assert result.shape == (2, 3, 3)
        assert tuple(result[0, 0]) == (0, 0, 255)

    def test_rejects_non_uint8(self):
        with pytest.raises(ValueError):
            normalize_color(np.zeros((4, 4, 3), dtype=np.float32))

    def test_rejects_unknown_type(self):
        with pytest.raises(TypeError):
            to_numpy([[0, 1], [1, 0]])


class TestBinarize:
    """Tests for fixed-threshold binarization."""

    def test_gray_threshold(self):
        gray = np.array([[0, 65, 66, 255]], dtype=np.uint8)
        assert binarize(gray, 65).tolist() == [[0, 0, 255, 255]]

    def test_color_per_channel(self):
        image = np.array([[[100, 200, 190]]], dtype=np.uint8)
        assert binarize(image, 190).tolist() == [[[0, 255, 0]]]

    def test_input_untouched(self, color_image):
        before = color_image.copy()
        binarize(color_image, 65)
        assert (color_image == before).all()


class TestChannels:
    """Tests for channel splitting."""

    def test_three_channels_with_inversion_gives_six(self, color_image):
        with channel_set(color_image, check_invert=True) as channels:
            assert len(channels) == 6
            assert all(c.ndim == 2 for c in channels)
            for original, inverted in zip(channels[:3], channels[3:]):
                assert ((original.astype(int) + inverted.astype(int)) == 255).all()

    def test_without_inversion(self, color_image):
        with channel_set(color_image, check_invert=False) as channels:
            assert len(channels) == 3
            assert (channels[2] == color_image[:, :, 2]).all()

    def test_released_on_exit(self, color_image):
        with channel_set(color_image) as channels:
            pass
        assert channels == []

    def test_released_on_error(self, color_image):
        with pytest.raises(RuntimeError):
            with channel_set(color_image) as channels:
                raise RuntimeError("boom")
        assert channels == []


class TestDrawing:
    """Tests for annotation helpers."""

    def test_draw_outline(self):
        canvas = np.zeros((20, 20, 3), dtype=np.uint8)
        draw_rectangles(canvas, [Rectangle(2, 3, 10, 5)], RED)
        assert tuple(canvas[3, 2]) == RED
        assert tuple(canvas[7, 11]) == RED
        assert tuple(canvas[5, 6]) == (0, 0, 0)
        assert tuple(canvas[8, 12]) == (0, 0, 0)

    def test_empty_rectangle_skipped(self):
        canvas = np.zeros((20, 20, 3), dtype=np.uint8)
        draw_rectangles(canvas, [Rectangle(5, 5, 0, 10)])
        assert canvas.max() == 0

    def test_ensure_color(self):
        gray = np.zeros((5, 5), dtype=np.uint8)
        assert ensure_color(gray).shape == (5, 5, 3)
        color = np.zeros((5, 5, 3), dtype=np.uint8)
        assert ensure_color(color) is color


class TestHelpers:
    """Tests for crop, bounds and grayscale."""

    def test_crop_copies(self, color_image):
        piece = crop(color_image, Rectangle(5, 10, 45, 10))
        assert piece.shape == (10, 45, 3)
        piece[:] = 0
        assert color_image[10, 5, 0] == 30

    def test_crop_zero_area(self, color_image):
        assert crop(color_image, Rectangle(5, 5, 0, 0)).size == 0

    def test_image_bounds(self, color_image):
        assert image_bounds(color_image) == Rectangle(0, 0, 60, 40)

    def test_grayscale(self, color_image):
        assert to_grayscale(color_image).shape == (40, 60)
