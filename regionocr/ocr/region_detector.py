"""
Region Detector for Text Detection Mode

Finds candidate text rectangles in a color image before recognition.

Detection Strategy:
1. Split the image into single-band channel images
2. Optionally append the inverted copy of every channel, so dark-on-light
   and light-on-dark text are both found without a second pass
3. Run the two-stage extremal-region classifier on every channel
   (NM1: fast, high recall; NM2: slower, high precision)
4. Group the surviving regions into horizontal word/line boxes and fuse
   the per-channel groups into one candidate list
5. Release channel images and region statistics on every exit path
6. Grow each box by a centered margin and clip it to the image

Zero-area boxes can survive clipping. Callers treat them as regions
without text.

Dependencies:
- opencv-contrib-python: cv2.text (extremal region filters and grouping)
- Three classifier files (NM1, NM2, grouping) at known paths
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol, Sequence, Union

import cv2
import numpy as np
from loguru import logger

from ..errors import ClassifierAssetError, ConfigurationError
from ..layout.box import Rectangle, intersect, merge_duplicates, scale_rectangle
from .preprocessor import channel_set, image_bounds

NM1_CLASSIFIER = 'trained_classifierNM1.xml'
NM2_CLASSIFIER = 'trained_classifierNM2.xml'
GROUPING_CLASSIFIER = 'trained_classifier_erGrouping.xml'


@dataclass(frozen=True)
class ClassifierAssets:
    """Locations of the three pre-trained region classifier files."""
    nm1: Path
    nm2: Path
    grouping: Path

    @classmethod
    def from_directory(
        cls,
        directory: Union[str, Path] = '.',
        nm1: str = NM1_CLASSIFIER,
        nm2: str = NM2_CLASSIFIER,
        grouping: str = GROUPING_CLASSIFIER,
    ) -> 'ClassifierAssets':
        base = Path(directory).expanduser()
        return cls(base / nm1, base / nm2, base / grouping)

    def verify(self) -> None:
        """
        Raises:
            ClassifierAssetError: for the first missing file
        """
        for path in (self.nm1, self.nm2, self.grouping):
            if not path.is_file():
                raise ClassifierAssetError(str(path))


class RegionClassifier(Protocol):
    """
    Two-stage extremal region classifier plus grouping.

    Used as a context manager: classifier state exists only inside the
    with-block.
    """

    def __enter__(self) -> 'RegionClassifier':
        ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> Optional[bool]:
        ...

    def extract(self, channel: np.ndarray) -> Sequence[Any]:
        """Run stage 1 then stage 2 on one channel, return its regions."""
        ...

    def group(
        self,
        image: np.ndarray,
        channels: Sequence[np.ndarray],
        regions: Sequence[Sequence[Any]],
    ) -> List[Rectangle]:
        """Fuse the regions of all channels into candidate rectangles."""
        ...


class ExtremalRegionClassifier:
    """
    RegionClassifier backed by OpenCV's scene text module (cv2.text).

    Filter parameters follow the Neumann & Matas defaults with a coarser
    threshold step (8) to keep the per-channel cost down.
    """

    def __init__(
        self,
        assets: ClassifierAssets,
        threshold_delta: int = 8,
        min_area: float = 0.00025,
        max_area: float = 0.13,
        min_probability: float = 0.4,
        non_max_suppression: bool = True,
        min_probability_diff: float = 0.1,
        nm2_min_probability: float = 0.3,
        grouping_min_probability: float = 0.5,
        duplicate_iou: float = 0.8,
    ):
        """
        Initialize classifier.

        Raises:
            ClassifierAssetError: a classifier file is missing
            ConfigurationError: OpenCV build lacks the text module
        """
        assets.verify()
        if not hasattr(cv2, 'text'):
            raise ConfigurationError(
                "cv2.text not available. Install opencv-contrib-python"
            )
        self.assets = assets
        self.threshold_delta = threshold_delta
        self.min_area = min_area
        self.max_area = max_area
        self.min_probability = min_probability
        self.non_max_suppression = non_max_suppression
        self.min_probability_diff = min_probability_diff
        self.nm2_min_probability = nm2_min_probability
        self.grouping_min_probability = grouping_min_probability
        self.duplicate_iou = duplicate_iou

        self._nm1_callback = None
        self._nm2_callback = None

    def __enter__(self) -> 'ExtremalRegionClassifier':
        self._nm1_callback = cv2.text.loadClassifierNM1(str(self.assets.nm1))
        self._nm2_callback = cv2.text.loadClassifierNM2(str(self.assets.nm2))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._nm1_callback = None
        self._nm2_callback = None

    def extract(self, channel: np.ndarray) -> Sequence[Any]:
        if self._nm1_callback is None:
            raise RuntimeError("Classifier used outside its with-block")
        # Fresh filters per channel: each one accumulates state for a
        # single channel only.
        er1 = cv2.text.createERFilterNM1(
            self._nm1_callback,
            self.threshold_delta,
            self.min_area,
            self.max_area,
            self.min_probability,
            self.non_max_suppression,
            self.min_probability_diff,
        )
        er2 = cv2.text.createERFilterNM2(self._nm2_callback, self.nm2_min_probability)
        return cv2.text.detectRegions(channel, er1, er2)

    def group(
        self,
        image: np.ndarray,
        channels: Sequence[np.ndarray],
        regions: Sequence[Sequence[Any]],
    ) -> List[Rectangle]:
        rects: List[Rectangle] = []
        for channel, channel_regions in zip(channels, regions):
            if len(channel_regions) == 0:
                continue
            groups = cv2.text.erGrouping(
                image,
                channel,
                [r.tolist() for r in channel_regions],
                cv2.text.ERGROUPING_ORIENTATION_HORIZ,
                str(self.assets.grouping),
                self.grouping_min_probability,
            )
            rects.extend(Rectangle.from_tuple(g) for g in groups)
        return merge_duplicates(rects, self.duplicate_iou)


class RegionDetector:
    """
    Detects text-bearing rectangles in a color image.

    Usage:
        detector = RegionDetector.from_assets(
            ClassifierAssets.from_directory('./classifiers')
        )
        for rect in detector.detect(image):
            ...

    The classifier is created through a factory so tests can inject a
    stub that records every channel it sees.
    """

    def __init__(
        self,
        classifier_factory: Callable[[], RegionClassifier],
        margin_scale: float = 1.1,
        check_invert: bool = True,
    ):
        """
        Initialize region detector.

        Args:
            classifier_factory: Returns a fresh RegionClassifier per detect()
            margin_scale: Centered scale applied to every candidate box
            check_invert: Default for polarity inversion
        """
        self.classifier_factory = classifier_factory
        self.margin_scale = margin_scale
        self.check_invert = check_invert

    @classmethod
    def from_assets(
        cls,
        assets: ClassifierAssets,
        margin_scale: float = 1.1,
        check_invert: bool = True,
        duplicate_iou: float = 0.8,
    ) -> 'RegionDetector':
        """Detector using the OpenCV classifier; asset paths are checked now."""
        assets.verify()
        return cls(
            lambda: ExtremalRegionClassifier(assets, duplicate_iou=duplicate_iou),
            margin_scale=margin_scale,
            check_invert=check_invert,
        )

    def detect(
        self,
        image: np.ndarray,
        check_invert: Optional[bool] = None,
    ) -> List[Rectangle]:
        """
        Find candidate text rectangles.

        Args:
            image: Color (BGR) image
            check_invert: Also search inverted channels (defaults to the
                detector setting)

        Returns:
            Rectangles in detection order, scaled and clipped to the image
        """
        if check_invert is None:
            check_invert = self.check_invert

        bounds = image_bounds(image)

        with self.classifier_factory() as classifier, \
                channel_set(image, check_invert) as channels:
            regions: List[Sequence[Any]] = []
            try:
                for index, channel in enumerate(channels):
                    channel_regions = classifier.extract(channel)
                    logger.debug(
                        f"Channel {index}: {len(channel_regions)} extremal regions"
                    )
                    regions.append(channel_regions)
                candidates = classifier.group(image, channels, regions)
            finally:
                regions.clear()

        logger.debug(
            f"Grouped {len(candidates)} candidate regions "
            f"from {bounds.width}x{bounds.height} image"
        )

        return [
            intersect(scale_rectangle(rect, self.margin_scale), bounds)
            for rect in candidates
        ]
