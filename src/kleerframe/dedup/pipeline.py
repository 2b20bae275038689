"""Public API: progressive near-duplicate detection over a photo collection."""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Iterable, List, MutableMapping, Optional

from ..config import Settings
from ..logging import get_logger
from .candidates import CandidateGenerator, Fingerprinter, ProgressCallback
from .cluster import dedupe
from .controls import PipelineControls
from .model import GeneratorStats, MatchCandidate, Photo

logger = get_logger(__name__)


@dataclass(frozen=True)
class PipelineSnapshot:
    """Deduplicated results as of one point in a run."""
    candidates: List[MatchCandidate]
    raw_count: int
    processed: int
    total: int
    final: bool = False
    cancelled: bool = False
    stats: GeneratorStats = field(default_factory=GeneratorStats)

    @property
    def has_matches(self) -> bool:
        return bool(self.candidates)


async def run_pipeline(
    photos: Iterable[Photo],
    settings: Optional[Settings] = None,
    controls: Optional[PipelineControls] = None,
    fingerprints: Optional[MutableMapping[str, str]] = None,
    fingerprinter: Optional[Fingerprinter] = None,
    advanced: bool = True,
    on_progress: Optional[ProgressCallback] = None,
) -> AsyncIterator[PipelineSnapshot]:
    """
    Detect near-duplicate photos, yielding deduplicated results as they grow.

    A snapshot is yielded after every new raw candidate and once more at the
    end with ``final=True``. A cancelled run still ends with a final
    snapshot holding everything found before cancellation. An empty photo
    list yields a single, empty final snapshot.

    Args:
        photos: Photos to examine
        settings: Pipeline configuration (reference defaults when omitted)
        controls: Pause/resume/cancel token
        fingerprints: Caller-owned fingerprint cache, updated in place
        fingerprinter: Override for computing a photo's fingerprint
        advanced: Run the clustering pass when deduplicating
        on_progress: Called with (processed, total) after each batch
    """
    settings = (settings or Settings()).validate()
    controls = controls or PipelineControls()
    policy = settings.dedup_policy()

    generator = CandidateGenerator(
        settings=settings,
        fingerprinter=fingerprinter,
        controls=controls,
        fingerprints=fingerprints,
        on_progress=on_progress,
    )
    raw: List[MatchCandidate] = []

    async for candidate in generator.generate(photos):
        raw.append(candidate)
        yield PipelineSnapshot(
            candidates=dedupe(raw, policy, advanced),
            raw_count=len(raw),
            processed=generator.stats.processed,
            total=generator.stats.total,
            stats=generator.stats.snapshot(),
        )

    results = dedupe(raw, policy, advanced)
    if controls.is_cancelled:
        logger.info(f"Run cancelled with {len(results)} matches from {len(raw)} raw candidates")
    elif results:
        logger.info(f"Found {len(results)} matches from {len(raw)} raw candidates")
    else:
        logger.info("No matches found")

    yield PipelineSnapshot(
        candidates=results,
        raw_count=len(raw),
        processed=generator.stats.processed,
        total=generator.stats.total,
        final=True,
        cancelled=controls.is_cancelled,
        stats=generator.stats.snapshot(),
    )


async def collect_pipeline(photos: Iterable[Photo], **kwargs) -> PipelineSnapshot:
    """Run the pipeline to completion and return its final snapshot."""
    snapshot = None
    async for snapshot in run_pipeline(photos, **kwargs):
        pass
    return snapshot


def run_pipeline_sync(photos: Iterable[Photo], **kwargs) -> PipelineSnapshot:
    """Blocking wrapper returning the final snapshot."""
    return asyncio.run(collect_pipeline(photos, **kwargs))
