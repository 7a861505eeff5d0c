"""
Error Taxonomy

Exceptions raised by the recognition pipeline. Every error derives from
OCRError so callers can catch the whole family in one place.

Recovery Policy:
- Full-page recognition retries against two binarizations when the
  engine returns nothing; that is not an error path.
- Model downloads retry transient network failures.
- Everything else propagates to the caller.
"""

from __future__ import annotations

from typing import Optional


class OCRError(Exception):
    """Base class for all pipeline errors."""


class EngineInitError(OCRError):
    """
    The recognition engine could not be created or configured.

    The previous engine handle (if any) has already been released when
    this is raised; callers must initialize again before recognizing.
    """


class ModelUnavailableError(OCRError):
    """A required trained-data file is missing and could not be fetched."""

    def __init__(self, language: str, message: str):
        super().__init__(f"Model '{language}' unavailable: {message}")
        self.language = language


class RecognitionError(OCRError):
    """
    The engine reported a failure status while recognizing.

    Fatal for the current request. No partial text is returned.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class EngineStateError(OCRError):
    """Results were requested before a successful recognize() call."""


class ConfigurationError(OCRError):
    """Invalid configuration values or configuration file."""


class ClassifierAssetError(ConfigurationError):
    """A region classifier file is missing from its configured path."""

    def __init__(self, path: str):
        super().__init__(f"Region classifier not found: {path}")
        self.path = path
