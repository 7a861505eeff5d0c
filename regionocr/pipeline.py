"""
Recognition Pipeline

Main orchestration module: owns the engine handle, normalizes input
images and dispatches to the full-page or text-detection strategy.

Flow:
    image -> normalize_color -> FullPageStrategy
                             -> RegionDetector -> RegionStrategy
          -> RecognitionResult

Engine Lifecycle:
- EngineManager holds at most one live RecognitionHandle
- initialize() releases the current handle before building a new one
- Model files (language + 'osd') are provisioned before the engine is
  created; any failure leaves the manager without a handle
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
from loguru import logger

from .config import OCRConfig
from .errors import EngineInitError, EngineStateError, ModelUnavailableError
from .layout.box import Rectangle
from .ocr.engine import Character, EngineMode, RecognitionEngine, TesseractEngine
from .ocr.ocr_engine import (
    FullPageAttempt,
    FullPageStrategy,
    RecognitionMode,
    RegionStrategy,
)
from .ocr.preprocessor import normalize_color
from .ocr.provisioning import OSD_LANGUAGE, ModelProvider
from .ocr.region_detector import RegionDetector

# (model_dir, language, engine_mode) -> engine
EngineFactory = Callable[[str, str, EngineMode], RecognitionEngine]


@dataclass
class RecognitionResult:
    """
    Result of one recognition request.

    All boxes are in the coordinate space of the input image.
    """
    text: str
    annotated_image: np.ndarray
    mode: RecognitionMode
    characters: List[Character] = field(default_factory=list)
    regions: List[Rectangle] = field(default_factory=list)
    structured_text: Optional[str] = None
    attempt: Optional[FullPageAttempt] = None
    failed_regions: List[int] = field(default_factory=list)
    processing_time: float = 0.0  # ms

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def to_dict(self) -> Dict[str, Any]:
        height, width = self.annotated_image.shape[:2]
        return {
            'mode': self.mode.value,
            'text': self.text,
            'image_size': {'width': width, 'height': height},
            'attempt': self.attempt.value if self.attempt else None,
            'characters': [c.to_dict() for c in self.characters],
            'regions': [r.to_dict() for r in self.regions],
            'failed_regions': list(self.failed_regions),
            'has_structured_text': self.structured_text is not None,
            'processing_time_ms': round(self.processing_time, 2),
        }


class RecognitionHandle:
    """An engine bound to (model_dir, language, engine_mode)."""

    def __init__(
        self,
        engine: RecognitionEngine,
        model_dir: str,
        language: str,
        engine_mode: EngineMode,
    ):
        self._engine: Optional[RecognitionEngine] = engine
        self.model_dir = model_dir
        self.language = language
        self.engine_mode = engine_mode

    @property
    def engine(self) -> RecognitionEngine:
        if self._engine is None:
            raise EngineStateError("Recognition handle has been released")
        return self._engine

    @property
    def released(self) -> bool:
        return self._engine is None

    def release(self) -> None:
        if self._engine is not None:
            self._engine.close()
            self._engine = None
            logger.debug(f"Released engine for '{self.language}'")


def _tesseract_factory(page_segmentation_mode: int = 3) -> EngineFactory:
    def build(model_dir: str, language: str, engine_mode: EngineMode) -> RecognitionEngine:
        return TesseractEngine(
            model_dir,
            language=language,
            engine_mode=engine_mode,
            page_segmentation_mode=page_segmentation_mode,
        )
    return build


class EngineManager:
    """
    Creates and owns the recognition engine.

    Usage:
        with EngineManager() as manager:
            handle = manager.initialize('~/tessdata', 'eng', EngineMode.DEFAULT)
            handle.engine.set_image(image)
    """

    def __init__(
        self,
        provider: Optional[ModelProvider] = None,
        engine_factory: Optional[EngineFactory] = None,
        default_model_dir: Optional[str] = None,
    ):
        """
        Initialize manager.

        Args:
            provider: Model downloader (default: ModelProvider())
            engine_factory: Builds the engine (default: TesseractEngine)
            default_model_dir: Used when initialize() gets an empty model_dir
        """
        self.provider = provider or ModelProvider()
        self.engine_factory = engine_factory or _tesseract_factory()
        self.default_model_dir = default_model_dir or OCRConfig().model_dir
        self._handle: Optional[RecognitionHandle] = None

    @classmethod
    def from_config(
        cls,
        config: OCRConfig,
        engine_factory: Optional[EngineFactory] = None,
        provider: Optional[ModelProvider] = None,
    ) -> 'EngineManager':
        provider = provider or ModelProvider(
            url_template=config.model_url_template,
            timeout=config.download_timeout,
            max_retries=config.download_retries,
        )
        return cls(
            provider=provider,
            engine_factory=engine_factory or _tesseract_factory(config.page_segmentation_mode),
            default_model_dir=config.model_dir,
        )

    @property
    def handle(self) -> Optional[RecognitionHandle]:
        return self._handle

    def initialize(
        self,
        model_dir: Optional[Union[str, Path]],
        language: str,
        engine_mode: EngineMode = EngineMode.TESSERACT_LSTM_COMBINED,
    ) -> RecognitionHandle:
        """
        (Re)create the engine.

        The current handle is released first, even if creation then fails.

        Raises:
            EngineInitError: models unobtainable or engine rejected the
                configuration; the underlying error is chained as __cause__
        """
        self.release()

        model_dir = str(model_dir) if model_dir else self.default_model_dir
        try:
            engine_mode = EngineMode.parse(engine_mode)
        except (KeyError, ValueError) as e:
            raise EngineInitError(f"Unknown engine mode: {engine_mode!r}") from e
        logger.info(
            f"Initializing engine: language={language}, mode={engine_mode.name}, "
            f"models={model_dir}"
        )

        try:
            self.provider.ensure_models(model_dir, [language, OSD_LANGUAGE])
            engine = self.engine_factory(model_dir, language, engine_mode)
        except ModelUnavailableError as e:
            raise EngineInitError(f"Cannot provision models: {e}") from e
        except EngineInitError:
            raise
        except Exception as e:
            raise EngineInitError(f"Engine creation failed: {e}") from e

        self._handle = RecognitionHandle(engine, model_dir, language, engine_mode)
        return self._handle

    def release(self) -> None:
        if self._handle is not None:
            self._handle.release()
            self._handle = None

    def __enter__(self) -> 'EngineManager':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


def run_recognition(
    engine: RecognitionEngine,
    source_image: Any,
    mode: Union[RecognitionMode, str] = RecognitionMode.FULL_PAGE,
    config: Optional[OCRConfig] = None,
    detector: Optional[RegionDetector] = None,
    check_invert: Optional[bool] = None,
) -> RecognitionResult:
    """
    Recognize text in an image.

    Args:
        engine: Initialized recognition engine
        source_image: numpy array (gray, BGR or BGRA) or PIL image;
            never modified
        mode: FULL_PAGE or TEXT_DETECTION
        config: Thresholds, margins and colors (defaults if None)
        detector: Region detector for TEXT_DETECTION (built from the
            configured classifier assets if None)
        check_invert: Override config.check_invert

    Returns:
        RecognitionResult

    Raises:
        RecognitionError: engine failure (no partial result)
        ClassifierAssetError: TEXT_DETECTION without classifier files
    """
    start_time = time.time()
    config = config or OCRConfig()
    mode = RecognitionMode.parse(mode)
    if check_invert is None:
        check_invert = config.check_invert

    image = normalize_color(source_image)
    height, width = image.shape[:2]
    logger.info(f"Recognizing {width}x{height} image in {mode.value} mode")

    if mode is RecognitionMode.FULL_PAGE:
        strategy = FullPageStrategy(
            gray_threshold=config.gray_threshold,
            color_threshold=config.color_threshold,
            box_color=config.box_color,
        )
        output = strategy.recognize(engine, image)
    else:
        if detector is None:
            detector = RegionDetector.from_assets(
                config.classifier_assets,
                margin_scale=config.margin_scale,
                check_invert=check_invert,
                duplicate_iou=config.duplicate_iou,
            )
        regions = detector.detect(image, check_invert)
        logger.info(f"Detected {len(regions)} text regions")
        strategy = RegionStrategy(
            abort_on_region_error=config.abort_on_region_error,
            box_color=config.box_color,
        )
        output = strategy.recognize(engine, image, regions)

    processing_time = (time.time() - start_time) * 1000
    result = RecognitionResult(
        text=output.text,
        annotated_image=output.annotated_image,
        mode=mode,
        characters=output.characters,
        regions=output.regions,
        structured_text=output.structured_text if mode is RecognitionMode.FULL_PAGE else None,
        attempt=output.attempt,
        failed_regions=output.failed_regions,
        processing_time=processing_time,
    )

    attempt = f", attempt={result.attempt.value}" if result.attempt else ''
    logger.info(
        f"Recognized {len(result.characters)} words{attempt} "
        f"in {processing_time:.0f}ms"
    )
    return result


class OCRPipeline:
    """
    Recognition pipeline bound to one engine.

    Usage:
        with OCRPipeline.from_config(load_config('ocr.yaml')) as pipeline:
            result = pipeline.run(image, RecognitionMode.TEXT_DETECTION)
            print(result.text)

    Pipelines share no state, so several can be alive at once.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        config: Optional[OCRConfig] = None,
        detector: Optional[RegionDetector] = None,
        manager: Optional[EngineManager] = None,
    ):
        self.engine = engine
        self.config = config or OCRConfig()
        self.detector = detector
        self._manager = manager

    @classmethod
    def from_config(
        cls,
        config: Optional[OCRConfig] = None,
        engine_factory: Optional[EngineFactory] = None,
        provider: Optional[ModelProvider] = None,
        detector: Optional[RegionDetector] = None,
    ) -> 'OCRPipeline':
        """
        Provision models, create the engine and return a pipeline that
        owns it.

        Raises:
            EngineInitError: engine could not be created
        """
        config = config or OCRConfig()
        manager = EngineManager.from_config(config, engine_factory, provider)
        handle = manager.initialize(config.model_dir, config.language, config.engine_mode)
        return cls(handle.engine, config, detector, manager)

    def run(
        self,
        image: Any,
        mode: Optional[Union[RecognitionMode, str]] = None,
        check_invert: Optional[bool] = None,
    ) -> RecognitionResult:
        """Recognize image; mode defaults to the configured one."""
        if self._manager is not None and self._manager.handle is None:
            raise EngineStateError("Pipeline has been closed")
        return run_recognition(
            self.engine,
            image,
            mode if mode is not None else self.config.mode,
            config=self.config,
            detector=self.detector,
            check_invert=check_invert,
        )

    def close(self) -> None:
        """Release the engine if this pipeline created it."""
        if self._manager is not None:
            self._manager.release()

    def __enter__(self) -> 'OCRPipeline':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
