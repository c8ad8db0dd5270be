"""Perceptual fingerprint computation for downloaded images."""

from PIL import Image
import imagehash

from ..logging import get_logger

logger = get_logger(__name__)

Fingerprint = imagehash.ImageHash


class HashFailed(Exception):
    """Raised when a fingerprint cannot be computed for an image."""


def compute_fingerprint(image: Image.Image) -> Fingerprint:
    """
    Compute the 64-bit perceptual hash of a decoded image.

    Args:
        image: Decoded PIL image

    Returns:
        pHash fingerprint; identical pixels always give an identical value

    Raises:
        HashFailed: If the image is empty or cannot be processed
    """
    width, height = image.size
    if width == 0 or height == 0:
        raise HashFailed(f"Cannot fingerprint zero-dimension image ({width}x{height})")

    try:
        # Convert to RGB if needed for consistent hashing
        if image.mode != 'RGB':
            image = image.convert('RGB')

        fingerprint = imagehash.phash(image)
    except Exception as exc:
        raise HashFailed(f"Failed to compute fingerprint: {exc}") from exc

    logger.debug(f"Computed fingerprint {fingerprint}")
    return fingerprint
