"""
Image Operations for Recognition

Small, side-effect-free image transforms used by the recognition
strategies and the region detector:

1. Color normalization - gray/BGRA/PIL input to a 3-channel BGR copy
2. Grayscale conversion
3. Fixed-threshold binarization
4. Channel splitting with optional polarity inversion
5. Rectangle drawing on an annotation buffer

Why fixed thresholds:
- Tesseract is sensitive to contrast and polarity
- A dark cut (65) recovers light text on dark backgrounds
- A bright cut (190) recovers low-contrast text on light backgrounds
- Neither needs caller-supplied parameters
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image

from ..layout.box import Rectangle

# BGR
RED = (0, 0, 255)


def to_numpy(image: Any) -> np.ndarray:
    """
    Convert supported inputs to a uint8 numpy array.

    PIL images are converted from RGB(A) to OpenCV's BGR(A) order.
    """
    if isinstance(image, Image.Image):
        if image.mode not in ('L', 'RGB', 'RGBA'):
            image = image.convert('RGB')
        array = np.array(image)
        if array.ndim == 3 and array.shape[2] == 4:
            return cv2.cvtColor(array, cv2.COLOR_RGBA2BGRA)
        if array.ndim == 3:
            return cv2.cvtColor(array, cv2.COLOR_RGB2BGR)
        return array
    if isinstance(image, np.ndarray):
        if image.dtype != np.uint8:
            raise ValueError(f"Expected 8-bit image, got dtype {image.dtype}")
        return image
    raise TypeError(f"Unsupported image type: {type(image).__name__}")


def channel_count(image: np.ndarray) -> int:
    return 1 if image.ndim == 2 else image.shape[2]


def normalize_color(image: Any) -> np.ndarray:
    """
    Return a 3-channel BGR copy of image.

    Gray input is expanded, an alpha channel is dropped, color input is
    copied. The caller's array is never returned or modified.
    """
    img = to_numpy(image)
    channels = channel_count(img)
    if channels == 1:
        if img.ndim == 3:
            img = img[:, :, 0]
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    if channels == 3:
        return img.copy()
    raise ValueError(f"Unsupported channel count: {channels}")


def to_grayscale(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image.copy()
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def binarize(image: np.ndarray, threshold: int) -> np.ndarray:
    """
    Fixed-threshold binarization: above threshold -> 255, else 0.

    Applied per channel for color input, so a BGR image stays 3-channel.
    """
    _, binary = cv2.threshold(image, threshold, 255, cv2.THRESH_BINARY)
    return binary


def crop(image: np.ndarray, rect: Rectangle) -> np.ndarray:
    """Copy of the pixels under rect (empty array for a zero-area rect)."""
    return image[rect.y:rect.bottom, rect.x:rect.right].copy()


def image_bounds(image: np.ndarray) -> Rectangle:
    height, width = image.shape[:2]
    return Rectangle(0, 0, width, height)


@contextmanager
def channel_set(image: np.ndarray, check_invert: bool = True) -> Iterator[List[np.ndarray]]:
    """
    Per-channel single-band images, released when the block exits.

    With check_invert the bitwise-inverted copy of every channel is
    appended, so a 3-channel image yields 6 channel images: the three
    originals followed by their inversions.
    """
    if image.ndim == 2:
        channels = [image.copy()]
    else:
        channels = [np.ascontiguousarray(image[:, :, i]) for i in range(image.shape[2])]
    if check_invert:
        channels.extend([cv2.bitwise_not(c) for c in channels])
    try:
        yield channels
    finally:
        channels.clear()


def draw_rectangles(
    canvas: np.ndarray,
    rects: Iterable[Rectangle],
    color: Sequence[int] = RED,
    thickness: int = 1,
) -> np.ndarray:
    """
    Draw rectangle outlines onto canvas in place.

    Zero-area rectangles are skipped. Returns canvas for chaining.
    """
    bgr: Tuple[int, ...] = tuple(int(c) for c in color)
    for rect in rects:
        if rect.is_empty:
            continue
        cv2.rectangle(
            canvas,
            (rect.x, rect.y),
            (rect.right - 1, rect.bottom - 1),
            bgr,
            thickness,
        )
    return canvas


def ensure_color(image: np.ndarray) -> np.ndarray:
    """Gray images become BGR copies; color images are returned unchanged."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image
