"""
Shared fixtures. Run with: pytest tests/ -v
"""

import sys

import numpy as np
import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    monkeypatch.delenv('TESSDATA_PREFIX', raising=False)
    yield
    # CLI commands replace the sinks with ones bound to the runner's streams
    logger.remove()
    logger.add(sys.stderr, level='DEBUG')


@pytest.fixture
def captured_logs():
    """Messages emitted through loguru during the test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record['message']), level='DEBUG')
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def color_image():
    """Small BGR image with a dark band, distinct per channel."""
    image = np.full((40, 60, 3), 200, dtype=np.uint8)
    image[10:20, 5:50] = (30, 60, 90)
    return image

