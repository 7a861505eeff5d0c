"""
Configuration

All tunable settings for one recognition pipeline, loadable from YAML.

YAML Layout (either form is accepted):

    language: eng
    mode: text_detection
    margin_scale: 1.1

or nested under an 'ocr' section:

    ocr:
      language: eng+fra
      gray_threshold: 70

Unknown keys are rejected instead of ignored, so a typo never silently
falls back to a default.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger

from .errors import ConfigurationError
from .ocr.engine import EngineMode
from .ocr.ocr_engine import RecognitionMode
from .ocr.provisioning import DEFAULT_MODEL_URL
from .ocr.region_detector import (
    GROUPING_CLASSIFIER,
    NM1_CLASSIFIER,
    NM2_CLASSIFIER,
    ClassifierAssets,
)

DEFAULT_MODEL_DIR = '~/.cache/regionocr/tessdata'


def default_model_dir() -> str:
    """$TESSDATA_PREFIX when set, otherwise the per-user cache directory."""
    return os.environ.get('TESSDATA_PREFIX') or DEFAULT_MODEL_DIR


@dataclass
class OCRConfig:
    """
    Configuration for a recognition pipeline.
    """
    # Engine
    language: str = 'eng'
    model_dir: str = field(default_factory=default_model_dir)
    engine_mode: EngineMode = EngineMode.TESSERACT_LSTM_COMBINED
    page_segmentation_mode: int = 3

    # Request
    mode: RecognitionMode = RecognitionMode.FULL_PAGE

    # Full-page fallbacks
    gray_threshold: int = 65
    color_threshold: int = 190

    # Region detection
    margin_scale: float = 1.1
    check_invert: bool = True
    classifier_dir: str = '.'
    nm1_classifier: str = NM1_CLASSIFIER
    nm2_classifier: str = NM2_CLASSIFIER
    grouping_classifier: str = GROUPING_CLASSIFIER
    duplicate_iou: float = 0.8
    abort_on_region_error: bool = True

    # Model provisioning
    model_url_template: str = DEFAULT_MODEL_URL
    download_timeout: float = 60.0
    download_retries: int = 3

    # Annotation (BGR)
    box_color: List[int] = field(default_factory=lambda: [0, 0, 255])

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Normalize enum fields and check value ranges.

        Raises:
            ConfigurationError: on the first invalid value
        """
        try:
            self.engine_mode = EngineMode.parse(self.engine_mode)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Invalid engine_mode: {self.engine_mode!r}") from e
        try:
            self.mode = RecognitionMode.parse(self.mode)
        except ValueError as e:
            raise ConfigurationError(f"Invalid mode: {self.mode!r}") from e

        if not self.language or not str(self.language).strip():
            raise ConfigurationError("language must not be empty")
        for name in ('gray_threshold', 'color_threshold'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 255:
                raise ConfigurationError(f"{name} must be an integer in 0..255, got {value!r}")
        if not isinstance(self.page_segmentation_mode, int) or not 0 <= self.page_segmentation_mode <= 13:
            raise ConfigurationError(
                f"page_segmentation_mode must be in 0..13, got {self.page_segmentation_mode!r}"
            )
        if not isinstance(self.margin_scale, (int, float)) or self.margin_scale <= 0:
            raise ConfigurationError(f"margin_scale must be positive, got {self.margin_scale!r}")
        if not isinstance(self.duplicate_iou, (int, float)) or not 0 < self.duplicate_iou <= 1:
            raise ConfigurationError(f"duplicate_iou must be in (0, 1], got {self.duplicate_iou!r}")
        if not isinstance(self.download_retries, int) or self.download_retries < 0:
            raise ConfigurationError(
                f"download_retries must be a non-negative integer, got {self.download_retries!r}"
            )
        if not isinstance(self.download_timeout, (int, float)) or self.download_timeout <= 0:
            raise ConfigurationError(
                f"download_timeout must be positive, got {self.download_timeout!r}"
            )
        for name in ('check_invert', 'abort_on_region_error'):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be true or false, got {getattr(self, name)!r}")
        if '{language}' not in self.model_url_template:
            raise ConfigurationError("model_url_template must contain '{language}'")

        color = list(self.box_color)
        if len(color) != 3 or not all(isinstance(c, int) and 0 <= c <= 255 for c in color):
            raise ConfigurationError(f"box_color must be three integers in 0..255, got {self.box_color!r}")
        self.box_color = color

    @property
    def classifier_assets(self) -> ClassifierAssets:
        return ClassifierAssets.from_directory(
            self.classifier_dir,
            self.nm1_classifier,
            self.nm2_classifier,
            self.grouping_classifier,
        )

    def merge(self, **overrides: Any) -> 'OCRConfig':
        """
        Copy with overrides applied. None values are ignored, so CLI
        options that were not given leave the file value in place.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(changes) - _field_names()
        if unknown:
            raise ConfigurationError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'language': self.language,
            'model_dir': self.model_dir,
            'engine_mode': self.engine_mode.name,
            'page_segmentation_mode': self.page_segmentation_mode,
            'mode': self.mode.value,
            'gray_threshold': self.gray_threshold,
            'color_threshold': self.color_threshold,
            'margin_scale': self.margin_scale,
            'check_invert': self.check_invert,
            'classifier_dir': self.classifier_dir,
            'nm1_classifier': self.nm1_classifier,
            'nm2_classifier': self.nm2_classifier,
            'grouping_classifier': self.grouping_classifier,
            'duplicate_iou': self.duplicate_iou,
            'abort_on_region_error': self.abort_on_region_error,
            'model_url_template': self.model_url_template,
            'download_timeout': self.download_timeout,
            'download_retries': self.download_retries,
            'box_color': list(self.box_color),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OCRConfig':
        unknown = set(data) - _field_names()
        if unknown:
            raise ConfigurationError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")
        return cls(**data)


def _field_names() -> set:
    return {f.name for f in dataclasses.fields(OCRConfig)}


def load_config(path: Optional[Union[str, Path]] = None) -> OCRConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: YAML file; None gives the defaults

    Returns:
        Validated OCRConfig

    Raises:
        ConfigurationError: unreadable file, bad YAML, unknown keys or
            invalid values
    """
    if path is None:
        return OCRConfig()

    path = Path(path)
    logger.info(f"Loading configuration from: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return OCRConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root in {path} must be a mapping")
    if 'ocr' in data:
        if set(data) != {'ocr'}:
            raise ConfigurationError(
                f"Configuration in {path} mixes an 'ocr' section with top-level keys"
            )
        data = data['ocr'] or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"'ocr' section in {path} must be a mapping")

    return OCRConfig.from_dict(data)
