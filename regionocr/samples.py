"""
Synthetic sample image used by the demo command and the integration test.
"""

from __future__ import annotations

import cv2
import numpy as np

SAMPLE_TEXT = 'Hello, world'


def hello_world_image(
    width: int = 400,
    height: int = 200,
    text: str = SAMPLE_TEXT,
) -> np.ndarray:
    """Green Hershey-complex text at (10, 80) on a blue background (BGR)."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:] = (255, 0, 0)
    cv2.putText(
        image,
        text,
        (10, 80),
        cv2.FONT_HERSHEY_COMPLEX,
        1.0,
        (0, 255, 0),
    )
    return image
