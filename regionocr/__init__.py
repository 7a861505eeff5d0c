"""
regionocr - Text Extraction from Raster Images

Tesseract-based OCR with two recognition modes.

Features:
- Full-page recognition with grayscale/color binarization fallbacks
- Text detection mode: extremal-region detection over color and inverted
  channels, then per-region recognition mapped back to image coordinates
- Automatic download of missing Tesseract trained data
- Annotated output images, hOCR markup and JSON reports

Quick Start:
    import cv2
    from regionocr import OCRPipeline, RecognitionMode

    with OCRPipeline.from_config() as pipeline:
        result = pipeline.run(cv2.imread('sign.jpg'), RecognitionMode.FULL_PAGE)
        print(result.text)

    # Text detection needs the three cv2.text classifier files
    from regionocr import OCRConfig

    config = OCRConfig(classifier_dir='./classifiers', language='eng')
    with OCRPipeline.from_config(config) as pipeline:
        result = pipeline.run(image, 'text_detection')
        for char in result.characters:
            print(char.text, char.bbox)

CLI Usage:
    regionocr recognize photo.jpg --mode text-detection --annotated out.png
    regionocr fetch-models eng fra
    regionocr demo
"""

__version__ = '1.0.0'

from .errors import (
    OCRError,
    EngineInitError,
    ModelUnavailableError,
    RecognitionError,
    EngineStateError,
    ConfigurationError,
    ClassifierAssetError,
)
from .layout.box import Rectangle, scale_rectangle, intersect
from .ocr.engine import Character, EngineMode, RecognitionEngine, TesseractEngine
from .ocr.ocr_engine import RecognitionMode, FullPageAttempt
from .ocr.region_detector import ClassifierAssets, RegionDetector
from .ocr.provisioning import ModelProvider
from .config import OCRConfig, load_config
from .pipeline import (
    OCRPipeline,
    EngineManager,
    RecognitionHandle,
    RecognitionResult,
    run_recognition,
)

__all__ = [
    '__version__',

    # Errors
    'OCRError',
    'EngineInitError',
    'ModelUnavailableError',
    'RecognitionError',
    'EngineStateError',
    'ConfigurationError',
    'ClassifierAssetError',

    # Geometry
    'Rectangle',
    'scale_rectangle',
    'intersect',

    # Engine
    'Character',
    'EngineMode',
    'RecognitionEngine',
    'TesseractEngine',
    'ModelProvider',

    # Detection
    'ClassifierAssets',
    'RegionDetector',

    # Pipeline
    'RecognitionMode',
    'FullPageAttempt',
    'OCRConfig',
    'load_config',
    'OCRPipeline',
    'EngineManager',
    'RecognitionHandle',
    'RecognitionResult',
    'run_recognition',
]
