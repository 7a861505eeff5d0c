"""
Tests for configuration loading and validation.
"""

import pytest

from regionocr.config import DEFAULT_MODEL_DIR, OCRConfig, load_config
from regionocr.errors import ConfigurationError
from regionocr.ocr.engine import EngineMode
from regionocr.ocr.ocr_engine import RecognitionMode
from regionocr.ocr.region_detector import NM1_CLASSIFIER


class TestOCRConfig:
    """Tests for defaults, validation and merging."""

    def test_defaults(self):
        config = OCRConfig()
        assert config.language == 'eng'
        assert config.model_dir == DEFAULT_MODEL_DIR
        assert config.engine_mode is EngineMode.TESSERACT_LSTM_COMBINED
        assert config.mode is RecognitionMode.FULL_PAGE
        assert config.gray_threshold == 65
        assert config.color_threshold == 190
        assert config.margin_scale == 1.1
        assert config.check_invert is True
        assert config.abort_on_region_error is True
        assert config.box_color == [0, 0, 255]

    def test_tessdata_prefix(self, monkeypatch):
        monkeypatch.setenv('TESSDATA_PREFIX', '/opt/tessdata')
        assert OCRConfig().model_dir == '/opt/tessdata'

    def test_enum_fields_parsed(self):
        config = OCRConfig(engine_mode='lstm-only', mode='text-detection')
        assert config.engine_mode is EngineMode.LSTM_ONLY
        assert config.mode is RecognitionMode.TEXT_DETECTION

    @pytest.mark.parametrize('overrides', [
        {'gray_threshold': 300},
        {'color_threshold': -1},
        {'margin_scale': 0},
        {'duplicate_iou': 1.5},
        {'download_retries': -1},
        {'box_color': [0, 0]},
        {'engine_mode': 'turbo'},
        {'mode': 'diagonal'},
        {'language': ''},
        {'check_invert': 'yes'},
        {'model_url_template': 'https://example.test/model'},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigurationError):
            OCRConfig(**overrides)

    def test_merge_ignores_none(self):
        base = OCRConfig(language='fra')
        merged = base.merge(language=None, gray_threshold=80)
        assert merged.language == 'fra'
        assert merged.gray_threshold == 80
        assert base.gray_threshold == 65

    def test_merge_validates(self):
        with pytest.raises(ConfigurationError):
            OCRConfig().merge(mode='sideways')

    def test_merge_unknown_key(self):
        with pytest.raises(ConfigurationError):
            OCRConfig().merge(colour='red')

    def test_to_dict_round_trip(self):
        config = OCRConfig(language='deu', mode='text_detection', engine_mode=1)
        data = config.to_dict()
        assert data['engine_mode'] == 'LSTM_ONLY'
        assert data['mode'] == 'text_detection'
        assert OCRConfig.from_dict(data) == config

    def test_classifier_assets(self, tmp_path):
        config = OCRConfig(classifier_dir=str(tmp_path))
        assert config.classifier_assets.nm1 == tmp_path / NM1_CLASSIFIER


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_none_gives_defaults(self):
        assert load_config(None) == OCRConfig()

    def test_top_level_keys(self, tmp_path):
        path = tmp_path / 'ocr.yaml'
        path.write_text('language: eng+fra\nmode: text_detection\ngray_threshold: 70\n')
        config = load_config(path)
        assert config.language == 'eng+fra'
        assert config.mode is RecognitionMode.TEXT_DETECTION
        assert config.gray_threshold == 70

    def test_ocr_section(self, tmp_path):
        path = tmp_path / 'ocr.yaml'
        path.write_text('ocr:\n  margin_scale: 1.2\n  box_color: [255, 0, 0]\n')
        config = load_config(path)
        assert config.margin_scale == 1.2
        assert config.box_color == [255, 0, 0]

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        assert load_config(path) == OCRConfig()

    def test_unknown_key(self, tmp_path):
        path = tmp_path / 'ocr.yaml'
        path.write_text('langauge: eng\n')
        with pytest.raises(ConfigurationError, match='langauge'):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'ocr.yaml'
        path.write_text('language: [eng\n')
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / 'ocr.yaml'
        path.write_text('- eng\n- fra\n')
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_mixed_section_and_keys(self, tmp_path):
        path = tmp_path / 'ocr.yaml'
        path.write_text('language: eng\nocr:\n  mode: full_page\n')
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / 'nope.yaml')
