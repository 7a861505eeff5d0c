"""
Recognition Engine Adapter

Wraps a stateful recognition engine behind a small interface:

    engine.set_image(image)      # bind the next target
    engine.recognize()           # run; raises RecognitionError on failure
    engine.get_characters()      # boxes in the bound image's coordinates
    engine.get_full_text()       # plain UTF-8 text
    engine.get_structured_text() # hOCR markup

The strategies only depend on the RecognitionEngine protocol, so tests
substitute scripted stubs and never need a real Tesseract install.

IMPORTANT: Tesseract must be installed separately:
- Linux: apt-get install tesseract-ocr
- macOS: brew install tesseract
- Windows: https://github.com/UB-Mannheim/tesseract/wiki
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

import cv2
import numpy as np
import pytesseract
from loguru import logger
from PIL import Image

from ..errors import EngineInitError, EngineStateError, RecognitionError
from ..layout.box import Rectangle

PAGE_SEPARATOR = '\x0c'


class EngineMode(Enum):
    """Tesseract OCR engine modes (--oem)."""
    TESSERACT_ONLY = 0
    LSTM_ONLY = 1
    TESSERACT_LSTM_COMBINED = 2
    DEFAULT = 3

    @classmethod
    def parse(cls, value: Union[str, int, 'EngineMode']) -> 'EngineMode':
        """Accept an enum member, its name (any case, '-' or '_') or its number."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        return cls[text.upper().replace('-', '_')]


@dataclass(frozen=True)
class Character:
    """
    A recognized glyph or word fragment.

    The box is in the coordinate space of the image that was bound when it
    was recognized; strategies offset crop-local boxes to global ones.
    """
    bbox: Rectangle
    text: str
    confidence: float

    def offset(self, dx: int, dy: int) -> 'Character':
        return Character(self.bbox.offset(dx, dy), self.text, self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'confidence': round(self.confidence, 3),
            'bbox': self.bbox.to_dict(),
        }


@runtime_checkable
class RecognitionEngine(Protocol):
    """Capability required by the recognition strategies."""

    def set_image(self, image: np.ndarray) -> None:
        ...

    def recognize(self) -> None:
        ...

    def get_characters(self) -> List[Character]:
        ...

    def get_full_text(self) -> str:
        ...

    def get_structured_text(self) -> str:
        ...

    def close(self) -> None:
        ...


class TesseractEngine:
    """
    RecognitionEngine backed by the Tesseract CLI through pytesseract.

    Usage:
        engine = TesseractEngine('/usr/share/tesseract-ocr/5/tessdata', 'eng')
        engine.set_image(image)
        engine.recognize()
        print(engine.get_full_text())
    """

    def __init__(
        self,
        model_dir: Union[str, Path],
        language: str = 'eng',
        engine_mode: EngineMode = EngineMode.TESSERACT_LSTM_COMBINED,
        page_segmentation_mode: int = 3,
        tesseract_cmd: Optional[str] = None,
    ):
        """
        Create and validate the engine.

        Args:
            model_dir: Directory holding <language>.traineddata
            language: Tesseract language code (e.g. 'eng', 'eng+fra')
            engine_mode: OCR engine mode
            page_segmentation_mode: Tesseract --psm value
            tesseract_cmd: Path to tesseract executable (auto-detected if None)

        Raises:
            EngineInitError: Tesseract missing or language not installed
        """
        self.model_dir = Path(model_dir).expanduser()
        self.language = language
        self.engine_mode = engine_mode
        self.page_segmentation_mode = page_segmentation_mode

        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

        self._image: Optional[Image.Image] = None
        self._data: Optional[Dict[str, List[Any]]] = None
        self._full_text: Optional[str] = None
        self._structured_text: Optional[str] = None
        self._closed = False

        self._check_engine()

    @property
    def config(self) -> str:
        """Command-line options passed to every Tesseract call."""
        return (
            f'--tessdata-dir "{self.model_dir}" '
            f'--oem {self.engine_mode.value} '
            f'--psm {self.page_segmentation_mode}'
        )

    @property
    def version(self) -> str:
        """Installed Tesseract version, e.g. '5.3.0'."""
        return str(pytesseract.get_tesseract_version())

    def _check_engine(self) -> None:
        try:
            version = pytesseract.get_tesseract_version()
            logger.debug(f"Tesseract version: {version}")
        except pytesseract.TesseractNotFoundError as e:
            raise EngineInitError(
                "Tesseract is not installed or not in PATH"
            ) from e

        try:
            available = set(pytesseract.get_languages(
                config=f'--tessdata-dir "{self.model_dir}"'
            ))
        except pytesseract.TesseractError as e:
            raise EngineInitError(
                f"Tesseract rejected model directory {self.model_dir}: {e.message}"
            ) from e

        missing = [
            code for code in self.language.split('+')
            if code and code not in available
        ]
        if missing:
            raise EngineInitError(
                f"Language(s) {', '.join(missing)} not available in {self.model_dir}"
            )

    def set_image(self, image: np.ndarray) -> None:
        """Bind an image (gray or BGR numpy array) for the next recognize()."""
        self._ensure_open()
        if image.size == 0:
            height, width = image.shape[:2]
            self._image = Image.new('L', (width, height))
        elif image.ndim == 3:
            self._image = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        else:
            self._image = Image.fromarray(image)
        self._data = None
        self._full_text = None
        self._structured_text = None

    def recognize(self) -> None:
        """
        Run recognition on the bound image.

        Raises:
            EngineStateError: no image bound
            RecognitionError: Tesseract exited with a failure status
        """
        self._ensure_open()
        if self._image is None:
            raise EngineStateError("recognize() called before set_image()")

        width, height = self._image.size
        if width == 0 or height == 0:
            self._data = {'text': []}
            self._full_text = ''
            return

        try:
            self._data = pytesseract.image_to_data(
                self._image,
                lang=self.language,
                config=self.config,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractError as e:
            raise RecognitionError(
                f"Tesseract failed: {e.message}", status=e.status
            ) from e

    def get_characters(self) -> List[Character]:
        """Word-level results with boxes and 0-1 confidences."""
        data = self._require_data()
        characters = []
        for i, text in enumerate(data['text']):
            if not str(text).strip():
                continue
            if int(data['level'][i]) != 5:
                continue
            conf = float(data['conf'][i])
            if conf < 0:
                continue
            bbox = Rectangle(
                int(data['left'][i]),
                int(data['top'][i]),
                int(data['width'][i]),
                int(data['height'][i]),
            )
            characters.append(Character(bbox, str(text), conf / 100.0))
        return characters

    def get_full_text(self) -> str:
        """Plain text without Tesseract's trailing form-feed page separator."""
        self._require_data()
        if self._full_text is None:
            text = self._run_text_call(pytesseract.image_to_string)
            self._full_text = text.rstrip(PAGE_SEPARATOR)
        return self._full_text

    def get_structured_text(self) -> str:
        """hOCR markup for the last recognized image."""
        self._require_data()
        if self._structured_text is None:
            width, height = self._image.size
            if width == 0 or height == 0:
                self._structured_text = ''
            else:
                raw = self._run_text_call(
                    pytesseract.image_to_pdf_or_hocr, extension='hocr'
                )
                self._structured_text = (
                    raw.decode('utf-8') if isinstance(raw, bytes) else raw
                )
        return self._structured_text

    def close(self) -> None:
        self._image = None
        self._data = None
        self._full_text = None
        self._structured_text = None
        self._closed = True

    def _run_text_call(self, func, **kwargs):
        try:
            return func(
                self._image,
                lang=self.language,
                config=self.config,
                **kwargs,
            )
        except pytesseract.TesseractError as e:
            raise RecognitionError(
                f"Tesseract failed: {e.message}", status=e.status
            ) from e

    def _require_data(self) -> Dict[str, List[Any]]:
        self._ensure_open()
        if self._data is None:
            raise EngineStateError("Results requested before a successful recognize()")
        return self._data

    def _ensure_open(self) -> None:
        if self._closed:
            raise EngineStateError("Engine has been released")
