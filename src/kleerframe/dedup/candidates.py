"""
Time-windowed candidate generation.

Photos are fingerprinted newest-first in small concurrent batches. After each
batch every newly fingerprinted photo acts as a seed: the photos already
fingerprinted inside its time window are compared against it, and the seed
plus its close neighbors become one raw match candidate. Several seeds from
the same burst of photos produce overlapping candidates; the deduplication
stages collapse them afterwards.
"""

import asyncio
from typing import AsyncIterator, Callable, Iterable, List, MutableMapping, Optional, Tuple

from ..config import Settings
from ..errors import DecodeFailure, InvalidGridError
from ..logging import get_logger
from .controls import PipelineControls
from .distance import confidence, hamming_distance
from .hash import fingerprint_image
from .model import GeneratorStats, MatchCandidate, Photo, TimeWindow

logger = get_logger(__name__)

Fingerprinter = Callable[[Photo], str]
ProgressCallback = Callable[[int, int], None]


def image_fingerprinter(grid_size: int = 32) -> Fingerprinter:
    """Fingerprinter that decodes each photo from its URI."""
    def _fingerprint(photo: Photo) -> str:
        return fingerprint_image(photo.uri, grid_size)
    return _fingerprint


def unique_photos(photos: Iterable[Photo]) -> List[Photo]:
    """Drop repeated photo ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for photo in photos:
        if photo.id in seen:
            logger.warning(f"Duplicate photo id {photo.id} in input, ignoring repeat")
            continue
        seen.add(photo.id)
        unique.append(photo)
    return unique


async def fingerprint_photo(photo: Photo,
                            fingerprinter: Fingerprinter,
                            cache: MutableMapping[str, str]) -> Optional[str]:
    """
    Fingerprint one photo in a worker thread, consulting ``cache`` first.

    Any failure of a single photo (undecodable file, decoder crash) is
    logged and yields None; grid configuration errors propagate.
    """
    cached = cache.get(photo.id)
    if cached is not None:
        return cached

    try:
        fingerprint = await asyncio.to_thread(fingerprinter, photo)
    except InvalidGridError:
        raise
    except DecodeFailure as exc:
        logger.warning(f"Failed to fingerprint {photo.filename} ({photo.id}): {exc}")
        return None
    except Exception as exc:
        logger.warning(f"Fingerprinter error on {photo.filename} ({photo.id}): {type(exc).__name__}: {exc}")
        return None

    cache[photo.id] = fingerprint
    return fingerprint


class CandidateGenerator:
    """
    Produces raw match candidates incrementally from a photo collection.

    Args:
        settings: Window, threshold, batch and slope configuration
        fingerprinter: Callable computing a photo's fingerprint; runs in a
            worker thread. Defaults to decoding ``photo.uri``.
        controls: Pause/resume/cancel token checked between batches
        fingerprints: Caller-owned cache of photo id -> fingerprint; cached
            photos are not re-hashed and new fingerprints are written back
        on_progress: Called with (processed, total) after every batch
    """

    def __init__(self,
                 settings: Optional[Settings] = None,
                 fingerprinter: Optional[Fingerprinter] = None,
                 controls: Optional[PipelineControls] = None,
                 fingerprints: Optional[MutableMapping[str, str]] = None,
                 on_progress: Optional[ProgressCallback] = None):
        self.settings = settings or Settings()
        self.fingerprinter = fingerprinter or image_fingerprinter(self.settings.grid_size)
        self.controls = controls or PipelineControls()
        self.fingerprints = fingerprints if fingerprints is not None else {}
        self.on_progress = on_progress
        self.stats = GeneratorStats()
        self._sequence = 0

    async def generate(self, photos: Iterable[Photo]) -> AsyncIterator[MatchCandidate]:
        """
        Yield raw match candidates as batches complete.

        Cancelling stops the run before the next batch (or while paused);
        candidates already yielded stay valid.
        """
        ordered = sorted(unique_photos(photos), key=lambda p: p.creation_time, reverse=True)
        self.stats = GeneratorStats(total=len(ordered))
        self._sequence = 0

        if not ordered:
            logger.info("No photos to process")
            return

        batch_size = self.settings.batch_size
        hashed: List[Tuple[Photo, str]] = []

        for start in range(0, len(ordered), batch_size):
            if not await self.controls.wait_if_paused():
                logger.info(f"Run cancelled after {self.stats.processed}/{self.stats.total} photos")
                break

            batch = ordered[start:start + batch_size]
            results = await asyncio.gather(*(self._fingerprint(photo) for photo in batch))

            if self.controls.is_cancelled:
                logger.info(f"Run cancelled during batch at {self.stats.processed}/{self.stats.total} photos")
                break

            new_hashed = [(photo, fp) for photo, fp in zip(batch, results) if fp is not None]
            hashed.extend(new_hashed)
            self.stats.processed += len(batch)
            self.stats.hashed += len(new_hashed)

            for seed, seed_fingerprint in new_hashed:
                if self.controls.is_cancelled:
                    break
                candidate = self._match_seed(seed, seed_fingerprint, hashed)
                if candidate is not None:
                    self.stats.candidates += 1
                    yield candidate

            if self.on_progress is not None:
                self.on_progress(self.stats.processed, self.stats.total)

        logger.info(
            f"Candidate generation finished: {self.stats.hashed}/{self.stats.total} hashed, "
            f"{self.stats.failed} failed, {self.stats.candidates} raw candidates"
        )

    async def _fingerprint(self, photo: Photo) -> Optional[str]:
        fingerprint = await fingerprint_photo(photo, self.fingerprinter, self.fingerprints)
        if fingerprint is None:
            self.stats.failed += 1
            self.stats.failed_ids.append(photo.id)
        return fingerprint

    def _match_seed(self,
                    seed: Photo,
                    seed_fingerprint: str,
                    hashed: List[Tuple[Photo, str]]) -> Optional[MatchCandidate]:
        window = TimeWindow.around(seed.creation_time, self.settings.window_millis)
        members = [seed]
        distances = []

        for other, other_fingerprint in hashed:
            if other.id == seed.id or not window.contains(other.creation_time):
                continue
            try:
                distance = hamming_distance(seed_fingerprint, other_fingerprint)
            except ValueError as exc:  # LengthMismatchError or a malformed cached fingerprint
                logger.warning(f"Cannot compare {seed.id} with {other.id}: {exc}")
                continue

            if distance <= self.settings.pair_threshold:
                members.append(other)
                distances.append(distance)

        if len(members) < 2:
            return None

        average = sum(distances) / len(distances)
        self._sequence += 1
        candidate = MatchCandidate(
            id=f"match-{seed.id}-{self._sequence}",
            photos=tuple(sorted(members, key=lambda p: p.creation_time)),
            average_hamming_distance=average,
            confidence=confidence(average, self.settings.batch_confidence_slope),
            time_window=window,
        )
        logger.debug(f"Seed {seed.id} matched {len(distances)} neighbors (avg distance {average:.2f})")
        return candidate
