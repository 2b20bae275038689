"""Helpers for building test photos and images."""

from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
from PIL import Image

from kleerframe.dedup.model import MatchCandidate, Photo, TimeWindow

MINUTE = 60 * 1000


def noise_image(seed: int, size: int = 64, high: int = 200) -> Image.Image:
    """Random RGB texture; values stay below ``high`` so brightness shifts do not clip."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, high, (size, size, 3), dtype=np.uint8)
    return Image.fromarray(pixels, 'RGB')


def brighten(img: Image.Image, amount: int) -> Image.Image:
    pixels = np.asarray(img, dtype=np.int16) + amount
    return Image.fromarray(np.clip(pixels, 0, 255).astype(np.uint8), 'RGB')


def save_image(img: Image.Image, path: Path, **kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path, **kwargs)
    return path


def make_photo(photo_id: str, minutes: float = 0.0, path: Optional[Path] = None) -> Photo:
    """Photo taken ``minutes`` after the epoch."""
    uri = path.resolve().as_uri() if path is not None else f"file:///photos/{photo_id}.jpg"
    return Photo(
        id=photo_id,
        uri=uri,
        filename=path.name if path is not None else f"{photo_id}.jpg",
        creation_time=int(minutes * MINUTE),
        width=64,
        height=64,
    )


def make_candidate(
    candidate_id: str,
    photo_ids: List[str],
    confidence: float = 90.0,
    average_distance: float = 3.0,
    window: Optional[TimeWindow] = None,
) -> MatchCandidate:
    """Candidate over photos spaced one minute apart."""
    photos = tuple(make_photo(pid, minutes=i) for i, pid in enumerate(photo_ids))
    if window is None:
        window = TimeWindow(start=-15 * MINUTE, end=15 * MINUTE)
    return MatchCandidate(
        id=candidate_id,
        photos=photos,
        average_hamming_distance=average_distance,
        confidence=confidence,
        time_window=window,
    )


class FakeFingerprinter:
    """Serves fingerprints from a table and records which photos were hashed."""

    def __init__(self, table: Dict[str, str], failures: Optional[Dict[str, Exception]] = None):
        self.table = table
        self.failures = failures or {}
        self.calls: List[str] = []

    def __call__(self, photo: Photo) -> str:
        self.calls.append(photo.id)
        if photo.id in self.failures:
            raise self.failures[photo.id]
        return self.table[photo.id]
