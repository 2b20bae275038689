"""Single-photo similarity search across a photo collection."""

import asyncio
from typing import Iterable, List, MutableMapping, Optional, Tuple

from ..config import Settings
from ..logging import get_logger
from .candidates import Fingerprinter, fingerprint_photo, image_fingerprinter
from .controls import PipelineControls
from .distance import confidence, hamming_distance
from .model import Photo, SimilarPhoto

logger = get_logger(__name__)


def find_similar(reference_id: str,
                 reference_fingerprint: str,
                 candidates: Iterable[Tuple[Photo, str]],
                 threshold: int = 20,
                 slope: float = 4.0) -> List[SimilarPhoto]:
    """
    Rank fingerprinted photos by closeness to a reference fingerprint.

    Args:
        reference_id: Id of the reference photo (excluded from results)
        reference_fingerprint: Fingerprint of the reference photo
        candidates: (photo, fingerprint) pairs to compare
        threshold: Maximum distance to report
        slope: Confidence slope for the similarity score

    Returns:
        Matches sorted by distance, closest first
    """
    results = []
    for photo, fingerprint in candidates:
        if photo.id == reference_id:
            continue
        try:
            distance = hamming_distance(reference_fingerprint, fingerprint)
        except ValueError as exc:
            logger.warning(f"Skipping {photo.id}: {exc}")
            continue
        if distance <= threshold:
            results.append(SimilarPhoto(photo=photo, distance=distance, similarity=confidence(distance, slope)))

    results.sort(key=lambda hit: hit.distance)
    return results


class SimilaritySearch:
    """
    Finds photos that look like a reference photo.

    Photos are fingerprinted in concurrent batches; photos that fail to
    decode are skipped.
    """

    def __init__(self,
                 settings: Optional[Settings] = None,
                 fingerprinter: Optional[Fingerprinter] = None,
                 controls: Optional[PipelineControls] = None,
                 fingerprints: Optional[MutableMapping[str, str]] = None):
        self.settings = settings or Settings()
        self.fingerprinter = fingerprinter or image_fingerprinter(self.settings.grid_size)
        self.controls = controls or PipelineControls()
        self.fingerprints = fingerprints if fingerprints is not None else {}

    async def search_async(self, reference: Photo, photos: Iterable[Photo]) -> List[SimilarPhoto]:
        """
        Search ``photos`` for images similar to ``reference``.

        Raises:
            DecodeFailure: If the reference photo itself cannot be fingerprinted
        """
        reference_fingerprint = self.fingerprints.get(reference.id)
        if reference_fingerprint is None:
            reference_fingerprint = await asyncio.to_thread(self.fingerprinter, reference)
            self.fingerprints[reference.id] = reference_fingerprint

        others = [photo for photo in photos if photo.id != reference.id]
        batch_size = self.settings.batch_size
        hashed: List[Tuple[Photo, str]] = []

        for start in range(0, len(others), batch_size):
            if not await self.controls.wait_if_paused():
                logger.info(f"Similarity search cancelled after {start}/{len(others)} photos")
                break
            batch = others[start:start + batch_size]
            results = await asyncio.gather(
                *(fingerprint_photo(photo, self.fingerprinter, self.fingerprints) for photo in batch)
            )
            hashed.extend((photo, fp) for photo, fp in zip(batch, results) if fp is not None)

        matches = find_similar(
            reference.id,
            reference_fingerprint,
            hashed,
            threshold=self.settings.search_threshold,
            slope=self.settings.search_confidence_slope,
        )
        logger.info(f"Found {len(matches)} photos similar to {reference.id}")
        return matches

    def search(self, reference: Photo, photos: Iterable[Photo]) -> List[SimilarPhoto]:
        """Blocking wrapper around ``search_async``."""
        return asyncio.run(self.search_async(reference, photos))
