"""
Recognition Strategies

Two ways of turning an image into text with a RecognitionEngine:

FullPageStrategy:
- Recognizes the whole image
- If nothing comes back, retries on a dark-cut grayscale binarization
  (threshold 65), then on a bright-cut color binarization (threshold 190)
- The annotation image follows the attempt that produced the result

RegionStrategy:
- Recognizes each detected rectangle as an independent crop
- Shifts crop-local character boxes back into image coordinates
- Emits one text line per region, including empty ones; line breaks
  inside a region collapse to spaces

Why fallbacks and not retries:
- Tesseract is deterministic, re-running the same input changes nothing
- Empty output on natural images usually means poor contrast or
  inverted polarity, which the two cuts address
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from ..errors import RecognitionError
from ..layout.box import Rectangle, intersect
from .engine import Character, RecognitionEngine
from .preprocessor import (
    RED,
    binarize,
    crop,
    draw_rectangles,
    ensure_color,
    to_grayscale,
)


class RecognitionMode(Enum):
    """How an image is recognized."""
    FULL_PAGE = 'full_page'
    TEXT_DETECTION = 'text_detection'

    @classmethod
    def parse(cls, value) -> 'RecognitionMode':
        """Accept a member or its value/name in any case, '-' or '_'."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower().replace('-', '_'))


class FullPageAttempt(Enum):
    """Which image produced the final full-page result."""
    ORIGINAL = 'original'
    GRAY_THRESHOLD = 'gray_threshold'
    COLOR_THRESHOLD = 'color_threshold'


@dataclass
class StrategyOutput:
    """Raw output of one strategy run, before timing and mode are attached."""
    text: str
    annotated_image: np.ndarray
    characters: List[Character] = field(default_factory=list)
    regions: List[Rectangle] = field(default_factory=list)
    structured_text: Optional[str] = None
    attempt: Optional[FullPageAttempt] = None
    failed_regions: List[int] = field(default_factory=list)


class FullPageStrategy:
    """
    Whole-image recognition with two binarization fallbacks.

    Usage:
        strategy = FullPageStrategy()
        output = strategy.recognize(engine, image)
    """

    def __init__(
        self,
        gray_threshold: int = 65,
        color_threshold: int = 190,
        box_color: Sequence[int] = RED,
    ):
        self.gray_threshold = gray_threshold
        self.color_threshold = color_threshold
        self.box_color = tuple(box_color)

    def recognize(self, engine: RecognitionEngine, image: np.ndarray) -> StrategyOutput:
        """
        Recognize a color-normalized image.

        The input array is never modified. Three empty attempts give empty
        text, not an error; a RecognitionError from any attempt propagates.
        """
        annotated = image.copy()
        attempt = FullPageAttempt.ORIGINAL
        characters = self._attempt(engine, image, attempt)

        if not characters:
            logger.warning(
                f"No text found, retrying with grayscale threshold {self.gray_threshold}"
            )
            annotated = binarize(to_grayscale(image), self.gray_threshold)
            attempt = FullPageAttempt.GRAY_THRESHOLD
            characters = self._attempt(engine, annotated, attempt)

        if not characters:
            logger.warning(
                f"No text found, retrying with color threshold {self.color_threshold}"
            )
            annotated = binarize(image, self.color_threshold)
            attempt = FullPageAttempt.COLOR_THRESHOLD
            characters = self._attempt(engine, annotated, attempt)

        annotated = ensure_color(annotated)
        draw_rectangles(annotated, (c.bbox for c in characters), self.box_color)

        return StrategyOutput(
            text=engine.get_full_text(),
            annotated_image=annotated,
            characters=characters,
            structured_text=engine.get_structured_text(),
            attempt=attempt,
        )

    @staticmethod
    def _attempt(
        engine: RecognitionEngine,
        image: np.ndarray,
        attempt: FullPageAttempt,
    ) -> List[Character]:
        engine.set_image(image)
        engine.recognize()
        characters = engine.get_characters()
        logger.debug(f"Attempt {attempt.value}: {len(characters)} characters")
        return characters


class RegionStrategy:
    """
    Per-region recognition over rectangles from the RegionDetector.

    Args:
        abort_on_region_error: If True (default) the first RecognitionError
            aborts the request. If False the failing region is logged and
            contributes an empty line.
        box_color: BGR color for region and character outlines
    """

    def __init__(
        self,
        abort_on_region_error: bool = True,
        box_color: Sequence[int] = RED,
    ):
        self.abort_on_region_error = abort_on_region_error
        self.box_color = tuple(box_color)

    def recognize(
        self,
        engine: RecognitionEngine,
        image: np.ndarray,
        regions: Sequence[Rectangle],
    ) -> StrategyOutput:
        lines: List[str] = []
        characters: List[Character] = []
        failed: List[int] = []

        for index, region in enumerate(regions):
            if region.is_empty:
                logger.debug(f"Region {index} has zero area, skipped")
                lines.append('\n')
                continue

            try:
                engine.set_image(crop(image, region))
                engine.recognize()
                local = engine.get_characters()
                text = engine.get_full_text()
            except RecognitionError as e:
                if self.abort_on_region_error:
                    raise
                logger.warning(f"Region {index} {region.to_tuple()} failed: {e}")
                failed.append(index)
                lines.append('\n')
                continue

            for c in local:
                placed = c.offset(region.x, region.y)
                characters.append(Character(
                    intersect(placed.bbox, region), placed.text, placed.confidence
                ))
            # one line per region, whatever layout the engine reported
            lines.append(' '.join(text.split()) + '\n')

        annotated = image.copy()
        draw_rectangles(annotated, regions, self.box_color)
        draw_rectangles(annotated, (c.bbox for c in characters), self.box_color)

        return StrategyOutput(
            text=''.join(lines),
            annotated_image=annotated,
            characters=characters,
            regions=list(regions),
            failed_regions=failed,
        )
