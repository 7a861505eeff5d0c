"""
OCR Package

Tesseract-backed recognition with two strategies:
- Full-page recognition with binarization fallbacks
- Region-based recognition over extremal-region text detections

Components:
- TesseractEngine: RecognitionEngine adapter over pytesseract
- ModelProvider: Fetches missing .traineddata files
- RegionDetector: Finds candidate text rectangles (cv2.text)
- FullPageStrategy / RegionStrategy: Turn an engine + image into text

Usage:
    from regionocr.ocr import TesseractEngine, FullPageStrategy

    engine = TesseractEngine('~/.cache/regionocr/tessdata', 'eng')
    output = FullPageStrategy().recognize(engine, image)
    print(output.text)
"""

from .engine import (
    Character,
    EngineMode,
    RecognitionEngine,
    TesseractEngine,
)
from .provisioning import (
    ModelProvider,
    model_path,
    split_languages,
    OSD_LANGUAGE,
)
from .region_detector import (
    ClassifierAssets,
    ExtremalRegionClassifier,
    RegionClassifier,
    RegionDetector,
)
from .ocr_engine import (
    RecognitionMode,
    FullPageAttempt,
    FullPageStrategy,
    RegionStrategy,
    StrategyOutput,
)

__all__ = [
    'Character',
    'EngineMode',
    'RecognitionEngine',
    'TesseractEngine',
    'ModelProvider',
    'model_path',
    'split_languages',
    'OSD_LANGUAGE',
    'ClassifierAssets',
    'ExtremalRegionClassifier',
    'RegionClassifier',
    'RegionDetector',
    'RecognitionMode',
    'FullPageAttempt',
    'FullPageStrategy',
    'RegionStrategy',
    'StrategyOutput',
]
