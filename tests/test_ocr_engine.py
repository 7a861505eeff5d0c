"""
Tests for the full-page and region recognition strategies.
"""

import numpy as np
import pytest

from regionocr.errors import RecognitionError
from regionocr.layout.box import Rectangle
from regionocr.ocr.ocr_engine import (
    FullPageAttempt,
    FullPageStrategy,
    RecognitionMode,
    RegionStrategy,
)
from regionocr.ocr.preprocessor import RED, binarize

from stubs import ScriptedEngine, char


class TestRecognitionMode:
    """Tests for mode parsing."""

    def test_parse(self):
        assert RecognitionMode.parse('full_page') is RecognitionMode.FULL_PAGE
        assert RecognitionMode.parse('text-detection') is RecognitionMode.TEXT_DETECTION
        assert RecognitionMode.parse('TEXT_DETECTION') is RecognitionMode.TEXT_DETECTION
        assert RecognitionMode.parse(RecognitionMode.FULL_PAGE) is RecognitionMode.FULL_PAGE

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            RecognitionMode.parse('sideways')


class TestFullPageStrategy:
    """Tests for the two-stage binarization fallback."""

    def setup_method(self):
        self.strategy = FullPageStrategy()

    def test_direct_hit_uses_original(self, color_image):
        engine = ScriptedEngine([[char('Hello', 5, 10, 45, 10)]])
        output = self.strategy.recognize(engine, color_image)

        assert engine.recognize_calls == 1
        assert output.attempt is FullPageAttempt.ORIGINAL
        assert output.text == 'Hello'
        assert output.structured_text == "<div class='ocr_page'>Hello</div>"
        assert (engine.images[0] == color_image).all()

    def test_annotation_is_a_copy(self, color_image):
        before = color_image.copy()
        engine = ScriptedEngine([[char('Hello', 5, 10, 45, 10)]])
        output = self.strategy.recognize(engine, color_image)

        assert (color_image == before).all()
        assert tuple(output.annotated_image[10, 5]) == RED

    def test_both_fallbacks_run(self, color_image):
        engine = ScriptedEngine([[], [], [char('X', 1, 1, 5, 5)]])
        output = self.strategy.recognize(engine, color_image)

        assert engine.recognize_calls == 3
        assert output.attempt is FullPageAttempt.COLOR_THRESHOLD
        assert output.text == 'X'

        gray_attempt, color_attempt = engine.images[1], engine.images[2]
        assert gray_attempt.ndim == 2
        assert set(np.unique(gray_attempt)) <= {0, 255}
        assert (color_attempt == binarize(color_image, 190)).all()

        # annotation is the 190-threshold image with the box drawn on it
        expected = binarize(color_image, 190)
        assert output.annotated_image.shape == color_image.shape
        assert (output.annotated_image[20:, 20:] == expected[20:, 20:]).all()
        assert tuple(output.annotated_image[1, 1]) == RED

    def test_gray_fallback_success(self, color_image):
        engine = ScriptedEngine([[], [char('Y', 2, 2, 4, 4)]])
        output = self.strategy.recognize(engine, color_image)

        assert engine.recognize_calls == 2
        assert output.attempt is FullPageAttempt.GRAY_THRESHOLD
        # gray annotation is converted to color so the box is visible
        assert output.annotated_image.ndim == 3
        assert tuple(output.annotated_image[2, 2]) == RED

    def test_three_empty_attempts_give_empty_text(self, color_image):
        engine = ScriptedEngine()
        output = self.strategy.recognize(engine, color_image)

        assert engine.recognize_calls == 3
        assert output.text == ''
        assert output.characters == []
        assert output.attempt is FullPageAttempt.COLOR_THRESHOLD

    def test_custom_thresholds(self, color_image):
        strategy = FullPageStrategy(gray_threshold=10, color_threshold=100)
        engine = ScriptedEngine()
        strategy.recognize(engine, color_image)
        assert (engine.images[2] == binarize(color_image, 100)).all()

    def test_recognition_error_propagates(self, color_image):
        engine = ScriptedEngine([[]], fail_on=[1])
        with pytest.raises(RecognitionError) as exc_info:
            self.strategy.recognize(engine, color_image)
        assert exc_info.value.status == 1

    def test_fallbacks_logged(self, color_image, captured_logs):
        self.strategy.recognize(ScriptedEngine(), color_image)
        assert any('grayscale threshold 65' in m for m in captured_logs)
        assert any('color threshold 190' in m for m in captured_logs)


class TestRegionStrategy:
    """Tests for per-region recognition and coordinate reconciliation."""

    def setup_method(self):
        self.image = np.full((200, 400, 3), 255, dtype=np.uint8)
        self.strategy = RegionStrategy()

    def test_one_line_per_region(self):
        regions = [Rectangle(10, 10, 100, 30), Rectangle(10, 60, 100, 30), Rectangle(10, 110, 100, 30)]
        engine = ScriptedEngine([[char('one', 0, 0, 20, 10)], [], [char('three', 0, 0, 20, 10)]])
        output = self.strategy.recognize(engine, self.image, regions)

        assert output.text == 'one\n\nthree\n'
        assert output.text.count('\n') == len(regions)

    def test_multiline_region_text_folds_to_one_line(self):
        regions = [Rectangle(10, 10, 100, 60), Rectangle(10, 100, 100, 60)]
        engine = ScriptedEngine(
            [[char('Hello', 0, 0, 20, 10)], [char('Hello', 0, 0, 20, 10)]],
            full_text='Hello\nworld\n\x0c',
        )
        output = self.strategy.recognize(engine, self.image, regions)

        assert output.text == 'Hello world\nHello world\n'
        assert output.text.count('\n') == len(regions)

    def test_characters_offset_to_image_space(self):
        regions = [Rectangle(100, 50, 80, 40)]
        engine = ScriptedEngine([[char('A', 5, 6, 10, 12)]])
        output = self.strategy.recognize(engine, self.image, regions)

        assert output.characters[0].bbox == Rectangle(105, 56, 10, 12)
        assert output.characters[0].text == 'A'

    def test_crops_match_regions(self):
        regions = [Rectangle(100, 50, 80, 40), Rectangle(0, 0, 30, 20)]
        engine = ScriptedEngine()
        self.strategy.recognize(engine, self.image, regions)

        assert [img.shape[:2] for img in engine.images] == [(40, 80), (20, 30)]

    def test_character_boxes_within_image(self):
        regions = [Rectangle(380, 180, 20, 20)]
        # engine box overshooting the crop
        engine = ScriptedEngine([[char('Z', 10, 10, 30, 30)]])
        output = self.strategy.recognize(engine, self.image, regions)

        bounds = Rectangle(0, 0, 400, 200)
        assert all(bounds.contains(c.bbox) for c in output.characters)

    def test_zero_area_region_skips_engine(self):
        regions = [Rectangle(400, 10, 0, 20), Rectangle(10, 10, 50, 20)]
        engine = ScriptedEngine([[char('ok', 0, 0, 10, 10)]])
        output = self.strategy.recognize(engine, self.image, regions)

        assert engine.recognize_calls == 1
        assert output.text == '\nok\n'

    def test_no_regions(self):
        engine = ScriptedEngine()
        output = self.strategy.recognize(engine, self.image, [])
        assert output.text == ''
        assert engine.recognize_calls == 0

    def test_draws_regions_and_characters(self):
        regions = [Rectangle(100, 50, 80, 40)]
        engine = ScriptedEngine([[char('A', 5, 6, 10, 12)]])
        output = self.strategy.recognize(engine, self.image, regions)

        assert tuple(output.annotated_image[50, 100]) == RED
        assert tuple(output.annotated_image[56, 105]) == RED
        assert self.image.min() == 255

    def test_region_error_aborts_by_default(self):
        regions = [Rectangle(0, 0, 10, 10), Rectangle(20, 20, 10, 10)]
        engine = ScriptedEngine(fail_on=[1])
        with pytest.raises(RecognitionError):
            self.strategy.recognize(engine, self.image, regions)

    def test_region_error_skipped_when_allowed(self, captured_logs):
        strategy = RegionStrategy(abort_on_region_error=False)
        regions = [Rectangle(0, 0, 10, 10), Rectangle(20, 20, 10, 10), Rectangle(40, 40, 10, 10)]
        engine = ScriptedEngine([[char('a', 0, 0, 2, 2)], [], [char('c', 0, 0, 2, 2)]], fail_on=[1])
        output = strategy.recognize(engine, self.image, regions)

        assert output.text == 'a\n\nc\n'
        assert output.failed_regions == [1]
        assert any('Region 1' in m for m in captured_logs)
