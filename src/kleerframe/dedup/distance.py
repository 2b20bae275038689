"""Distance metrics and confidence scoring for fingerprint comparison."""

from ..errors import LengthMismatchError
from .hash import hex_to_hash


def hamming_distance(a: str, b: str) -> int:
    """
    Count the differing bits between two hex fingerprints.

    Args:
        a: First fingerprint
        b: Second fingerprint

    Returns:
        Hamming distance (0..63 for fingerprints produced by this package)

    Raises:
        LengthMismatchError: If the fingerprints differ in length
        ValueError: If either fingerprint contains a non-hex character
    """
    if len(a) != len(b):
        raise LengthMismatchError(f"Fingerprint lengths differ: {len(a)} != {len(b)}")
    return int(hex_to_hash(a) - hex_to_hash(b))


def confidence(distance: float, slope: float = 3.0) -> float:
    """
    Map a distance onto a 0..100 confidence score.

    The same linear law serves every matching context; only the slope
    changes (3 for time-windowed batch matching, 4 for single-photo search).
    """
    return max(0.0, 100.0 - distance * slope)


def are_similar(a: str, b: str, threshold: int = 10) -> bool:
    """Return True when the fingerprints are within ``threshold`` bits."""
    if threshold < 0:
        raise ValueError(f"Similarity threshold must be non-negative, got {threshold}")
    return hamming_distance(a, b) <= threshold
