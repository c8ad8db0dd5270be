"""Download and decode a single image, retrying on failure."""

from __future__ import annotations

import io
import time
from typing import Callable, Optional

import requests
from requests.adapters import HTTPAdapter
from PIL import Image, UnidentifiedImageError

from ..logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 180.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF = 120.0


class FetchFailed(Exception):
    """Raised when an image could not be downloaded and decoded."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException]) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to download image from {url} after {attempts} attempts: {last_error}"
        )


def make_session(pool_size: int = 10) -> requests.Session:
    """
    Create a pooled HTTP session for the fetch workers.

    urllib3 retries are disabled; ImageFetcher owns the retry budget so that
    decode failures and transport failures share the same attempt count.
    """
    sess = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    return sess


class ImageFetcher:
    """
    Fetch images through an injected HTTP session.

    Each attempt issues one GET. A transport error, a non-2xx status, or a body
    Pillow cannot decode all count as a failed attempt. Between attempts the
    fetcher waits ``backoff`` seconds; there is no wait after the last one.
    """

    def __init__(
        self,
        session: requests.Session,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: float = DEFAULT_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self._session = session
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def fetch(self, url: str) -> Image.Image:
        """
        Download and decode the image at ``url``.

        Returns:
            Fully loaded PIL image

        Raises:
            FetchFailed: Once every attempt has failed
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self._max_attempts + 1):
            logger.debug(f"Attempt {attempt}: downloading {url}")
            try:
                response = self._session.get(url, timeout=self._timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                last_error = exc
                logger.warning(f"Attempt {attempt}: failed to download image from {url}: {exc}")
            else:
                try:
                    return _decode(response.content)
                except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
                    last_error = exc
                    logger.warning(f"Attempt {attempt}: failed to decode image from {url}: {exc}")

            if attempt < self._max_attempts:
                self._sleep(self._backoff)

        logger.error(f"Giving up on {url} after {self._max_attempts} attempts")
        raise FetchFailed(url, self._max_attempts, last_error)


def _decode(payload: bytes) -> Image.Image:
    with Image.open(io.BytesIO(payload)) as img:
        img.load()
        # Detach from the buffer so the response body can be released
        return img.copy()
