"""Helpers for building test images, fingerprints, and fake HTTP traffic."""

import io
import threading
from typing import Dict, List, Optional, Sequence, Union

import imagehash
import numpy as np
import requests
from PIL import Image

from photodedup.fetch.fetcher import FetchFailed


def noise_image(seed: int, size: int = 64) -> Image.Image:
    """Random grayscale noise as RGB; different seeds give far-apart pHashes."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(size, size), dtype=np.uint8)
    return Image.fromarray(pixels).convert("RGB")


def encode(image: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


def hash_with_bits(flipped: int) -> imagehash.ImageHash:
    """A 64-bit hash whose distance from the all-zero hash is ``flipped``."""
    bits = np.zeros(64, dtype=bool)
    bits[:flipped] = True
    return imagehash.ImageHash(bits.reshape(8, 8))


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


Reply = Union[bytes, FakeResponse, Exception]


class FakeSession:
    """
    Stand-in for requests.Session serving canned replies per URL.

    A URL maps to one reply (served every time) or a list of replies served
    in order, the last one repeating. Exceptions are raised instead of returned.
    Unknown URLs raise ConnectionError.
    """

    def __init__(self, replies: Dict[str, Union[Reply, Sequence[Reply]]]) -> None:
        self._replies = replies
        self._lock = threading.Lock()
        self.calls: List[str] = []
        self.timeouts: List[Optional[float]] = []

    def get(self, url: str, timeout: Optional[float] = None) -> FakeResponse:
        with self._lock:
            attempt = self.calls.count(url)
            self.calls.append(url)
            self.timeouts.append(timeout)

        reply = self._replies.get(url)
        if reply is None:
            raise requests.ConnectionError(f"unreachable: {url}")
        if isinstance(reply, (list, tuple)):
            reply = reply[min(attempt, len(reply) - 1)]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, FakeResponse):
            return reply
        return FakeResponse(reply)

    def attempts_for(self, url: str) -> int:
        with self._lock:
            return self.calls.count(url)


class FakeFetcher:
    """Fetcher serving images directly; URLs in ``failing`` raise FetchFailed."""

    def __init__(self, images: Dict[str, Image.Image], failing: Sequence[str] = ()) -> None:
        self._images = images
        self._failing = set(failing)

    def fetch(self, url: str) -> Image.Image:
        if url in self._failing or url not in self._images:
            raise FetchFailed(url, 3, requests.ConnectionError(f"unreachable: {url}"))
        image = self._images[url].copy()
        image.info["url"] = url
        return image


def keyed_hasher(fingerprints: Dict[str, imagehash.ImageHash]):
    """Hasher that looks fingerprints up by the URL FakeFetcher stamps on the image."""
    def _hash(image: Image.Image) -> imagehash.ImageHash:
        return fingerprints[image.info["url"]]
    return _hash
