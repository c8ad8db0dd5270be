"""Distance metrics for fingerprint comparison."""

import imagehash


def hamming_distance(a: imagehash.ImageHash, b: imagehash.ImageHash) -> int:
    """
    Calculate Hamming distance between two perceptual hashes.

    Args:
        a: First hash
        b: Second hash

    Returns:
        Hamming distance (number of differing bits)
    """
    return int(a - b)


def is_duplicate(distance: int, threshold: int) -> bool:
    """Duplicates are strictly closer than the threshold; equal is not a match."""
    return distance < threshold
