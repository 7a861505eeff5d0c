"""
Rectangle Primitives

Integer rectangles in image-pixel coordinates, used to describe detected
text regions and recognized character boxes.

Design Decisions:
- Coordinates are image pixels with a top-left origin (OpenCV convention)
- (x, y, width, height) layout, matching cv2.boundingRect and erGrouping
- Immutable: every operation returns a new rectangle
- Rounding is half away from zero so scaling is symmetric around the center
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class Rectangle:
    """
    Immutable axis-aligned rectangle.

    Example:
        region = Rectangle(10, 20, 100, 30)
        margin = region.scale(1.1)
        clipped = margin.intersect(Rectangle(0, 0, 400, 200))
    """
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Rectangle size must be non-negative, got {self.width}x{self.height}"
            )

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def center(self) -> Tuple[float, float]:
        """Center point (cx, cy)."""
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def to_tuple(self) -> Tuple[int, int, int, int]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, int]:
        """Return as dictionary for JSON serialization."""
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
        }

    @classmethod
    def from_tuple(cls, values: Sequence[float]) -> 'Rectangle':
        """Build from any (x, y, width, height) sequence, e.g. a numpy row."""
        x, y, w, h = (int(v) for v in values[:4])
        return cls(x, y, w, h)

    def offset(self, dx: int, dy: int) -> 'Rectangle':
        """Translate the rectangle by (dx, dy)."""
        return Rectangle(self.x + dx, self.y + dy, self.width, self.height)

    def scale(self, factor: float) -> 'Rectangle':
        """See scale_rectangle()."""
        return scale_rectangle(self, factor)

    def intersect(self, bounds: 'Rectangle') -> 'Rectangle':
        """See intersect()."""
        return intersect(self, bounds)

    def contains(self, other: 'Rectangle') -> bool:
        """Whether other lies fully inside this rectangle."""
        return (
            self.x <= other.x and
            self.y <= other.y and
            other.right <= self.right and
            other.bottom <= self.bottom
        )

    def iou(self, other: 'Rectangle') -> float:
        """Intersection over union, 0.0 for disjoint or empty rectangles."""
        inter_w = min(self.right, other.right) - max(self.x, other.x)
        inter_h = min(self.bottom, other.bottom) - max(self.y, other.y)
        if inter_w <= 0 or inter_h <= 0:
            return 0.0
        inter = inter_w * inter_h
        union = self.area + other.area - inter
        return inter / union if union > 0 else 0.0


def scale_rectangle(r: Rectangle, factor: float) -> Rectangle:
    """
    Scale a rectangle around its center.

    Width and height are multiplied by factor and rounded half away from
    zero; the origin is re-derived from the unchanged center. The result
    is not clipped and may extend past the image.

    Args:
        r: Rectangle to scale
        factor: Scale factor (1.1 adds a 5% margin on each side)

    Returns:
        New scaled Rectangle
    """
    center_x, center_y = r.center
    new_width = round_half_away(r.width * factor)
    new_height = round_half_away(r.height * factor)
    return Rectangle(
        round_half_away(center_x - new_width / 2.0),
        round_half_away(center_y - new_height / 2.0),
        max(0, new_width),
        max(0, new_height),
    )


def intersect(r: Rectangle, bounds: Rectangle) -> Rectangle:
    """
    Intersect a rectangle with bounds.

    Disjoint inputs produce a zero-area rectangle whose origin is clamped
    into bounds, so the result is always contained in bounds.
    """
    x0 = min(max(r.x, bounds.x), bounds.right)
    y0 = min(max(r.y, bounds.y), bounds.bottom)
    x1 = max(min(r.right, bounds.right), x0)
    y1 = max(min(r.bottom, bounds.bottom), y0)
    return Rectangle(x0, y0, x1 - x0, y1 - y0)


def merge_duplicates(
    rects: Iterable[Rectangle],
    iou_threshold: float = 0.8,
) -> List[Rectangle]:
    """
    Drop rectangles that nearly coincide with an earlier one.

    Order-preserving: the first occurrence of a group of near-identical
    rectangles is kept.
    """
    kept: List[Rectangle] = []
    for rect in rects:
        if any(rect == k or rect.iou(k) >= iou_threshold for k in kept):
            continue
        kept.append(rect)
    return kept
