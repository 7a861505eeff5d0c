"""
Model Data Provisioning

Makes sure Tesseract trained-data files exist locally before an engine is
created, downloading missing ones.

File Layout:
    <model_dir>/<language>.traineddata

Every engine needs the primary language file plus 'osd' (orientation
and script detection). Downloads go to a temporary file in the target
directory and are renamed into place, so an interrupted fetch never
leaves a truncated model behind.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Union

import httpx
from loguru import logger

from ..errors import ModelUnavailableError
from ..performance.retry import RetryPolicy, execute_with_retry

DEFAULT_MODEL_URL = (
    'https://github.com/tesseract-ocr/tessdata/raw/main/{language}.traineddata'
)

OSD_LANGUAGE = 'osd'

MODEL_SUFFIX = '.traineddata'


def model_path(directory: Union[str, Path], language: str) -> Path:
    """Location of the trained-data file for a language."""
    return Path(directory) / f"{language}{MODEL_SUFFIX}"


def split_languages(language: str) -> List[str]:
    """Split a Tesseract language string like 'eng+fra' into its codes."""
    return [code for code in language.split('+') if code]


class ModelProvider:
    """
    Fetches trained-data files on demand.

    Usage:
        provider = ModelProvider()
        provider.ensure_models('~/.cache/regionocr/tessdata', ['eng', 'osd'])
    """

    def __init__(
        self,
        url_template: str = DEFAULT_MODEL_URL,
        client: Optional[httpx.Client] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 60.0,
        max_retries: int = 3,
    ):
        """
        Initialize provider.

        Args:
            url_template: Download URL with a {language} placeholder
            client: Shared HTTP client (one is created per download if None)
            retry_policy: Policy for transient transport failures
            timeout: Per-request timeout in seconds
            max_retries: Retries for the default policy (ignored with retry_policy)
        """
        self.url_template = url_template
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=max_retries,
            retry_exceptions={httpx.TransportError},
        )
        self.timeout = timeout

    def url_for(self, language: str) -> str:
        return self.url_template.format(language=language)

    def ensure_model(self, directory: Union[str, Path], language: str) -> Path:
        """
        Ensure <language>.traineddata exists under directory.

        Args:
            directory: Model directory (created if missing)
            language: Single Tesseract language code

        Returns:
            Path to the local model file

        Raises:
            ModelUnavailableError: file missing and could not be fetched
        """
        directory = Path(directory).expanduser()
        dest = model_path(directory, language)
        if dest.is_file():
            logger.debug(f"Model present: {dest}")
            return dest

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ModelUnavailableError(
                language, f"cannot create {directory}: {e}"
            ) from e

        url = self.url_for(language)
        logger.info(f"Downloading '{language}' model from {url}")

        try:
            execute_with_retry(self._download, self.retry_policy, url, dest)
        except httpx.HTTPStatusError as e:
            raise ModelUnavailableError(
                language, f"HTTP {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise ModelUnavailableError(language, f"download failed: {e}") from e
        except OSError as e:
            raise ModelUnavailableError(language, f"cannot write {dest}: {e}") from e

        logger.info(f"Saved model to {dest}")
        return dest

    def ensure_models(
        self,
        directory: Union[str, Path],
        languages: Iterable[str],
    ) -> List[Path]:
        """Ensure several models, expanding 'eng+fra' style strings."""
        paths = []
        for language in languages:
            for code in split_languages(language):
                paths.append(self.ensure_model(directory, code))
        return paths

    def _download(self, url: str, dest: Path) -> None:
        if self.client is not None:
            self._stream_to(self.client, url, dest)
            return
        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            self._stream_to(client, url, dest)

    def _stream_to(self, client: httpx.Client, url: str, dest: Path) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{dest.name}.", suffix='.part', dir=dest.parent
        )
        try:
            with os.fdopen(fd, 'wb') as f:
                with client.stream('GET', url, follow_redirects=True) as response:
                    response.raise_for_status()
                    for chunk in response.iter_bytes():
                        f.write(chunk)
            os.replace(tmp_name, dest)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
