"""
Layout Package

Geometric primitives for text regions and character boxes.

Usage:
    from regionocr.layout import Rectangle, scale_rectangle, intersect

    margin = scale_rectangle(Rectangle(10, 10, 100, 20), 1.1)
    clipped = intersect(margin, Rectangle(0, 0, 400, 200))
"""

from .box import (
    Rectangle,
    scale_rectangle,
    intersect,
    merge_duplicates,
    round_half_away,
)

__all__ = [
    'Rectangle',
    'scale_rectangle',
    'intersect',
    'merge_duplicates',
    'round_half_away',
]
