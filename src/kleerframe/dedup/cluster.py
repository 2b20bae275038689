"""
Deduplication of raw match candidates.

The candidate generator emits one candidate per seed photo, so a single
burst of similar photos shows up many times: as subsets of each other, as
identical photo sets reached from different seeds, and as heavily
overlapping groups. The stages below collapse that into a clean result set.
Every stage is a pure function over a list and keeps the relative order of
the candidates it retains.
"""

from typing import FrozenSet, Iterable, List, Optional, Sequence

from ..config import DedupPolicy
from ..logging import get_logger
from .model import MatchCandidate

logger = get_logger(__name__)


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    """Intersection over union of two id sets."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def is_strict_subset(candidate: MatchCandidate, other: MatchCandidate) -> bool:
    """True if every photo of ``candidate`` is in ``other`` and ``other`` has more photos."""
    ids = candidate.photo_ids
    other_ids = other.photo_ids
    return len(ids) < len(other_ids) and ids <= other_ids


def membership_key(candidate: MatchCandidate) -> str:
    return "|".join(sorted(candidate.photo_ids))


def filter_valid(candidates: Iterable[MatchCandidate], policy: Optional[DedupPolicy] = None) -> List[MatchCandidate]:
    """
    Stage A: drop low-quality candidates.

    Removes weak pairs (exactly two photos below the pair confidence floor),
    candidates whose average distance suggests a false positive, and
    candidates whose time window spans too long.
    """
    policy = policy or DedupPolicy()
    valid = []
    for candidate in candidates:
        if candidate.photo_count == 2 and candidate.confidence < policy.min_pair_confidence:
            continue
        if candidate.average_hamming_distance > policy.max_average_distance:
            continue
        if candidate.time_window.span > policy.max_window_span_ms:
            continue
        valid.append(candidate)
    return valid


def remove_subsets(candidates: Sequence[MatchCandidate]) -> List[MatchCandidate]:
    """
    Stage B: keep only maximal photo sets.

    Candidates are visited in descending confidence (stable). A candidate
    contained in an accepted one is dropped; accepted candidates contained in
    the current one are evicted before it is accepted.
    """
    ordered = sorted(candidates, key=lambda c: c.confidence, reverse=True)
    accepted: List[MatchCandidate] = []

    for candidate in ordered:
        if any(is_strict_subset(candidate, kept) for kept in accepted):
            continue
        accepted = [kept for kept in accepted if not is_strict_subset(kept, candidate)]
        accepted.append(candidate)

    return accepted


def remove_reciprocals(candidates: Sequence[MatchCandidate]) -> List[MatchCandidate]:
    """Stage C: keep the first candidate for each distinct photo set."""
    seen = set()
    unique = []
    for candidate in candidates:
        key = membership_key(candidate)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def remove_temporal_overlaps(candidates: Sequence[MatchCandidate],
                             policy: Optional[DedupPolicy] = None) -> List[MatchCandidate]:
    """
    Stage D: drop candidates that mostly repeat an accepted one in time.

    A candidate is dropped when, against any accepted candidate, its photo
    Jaccard overlap exceeds the policy threshold and the time windows
    intersect.
    """
    policy = policy or DedupPolicy()
    accepted: List[MatchCandidate] = []

    for candidate in candidates:
        overlaps = any(
            jaccard(candidate.photo_ids, kept.photo_ids) > policy.overlap_jaccard
            and candidate.time_window.overlaps(kept.time_window)
            for kept in accepted
        )
        if not overlaps:
            accepted.append(candidate)

    return accepted


def identify_clusters(candidates: Sequence[MatchCandidate], threshold: float = 0.3) -> List[List[MatchCandidate]]:
    """
    Group candidates by photo overlap in a single pass.

    Each unassigned candidate seeds a cluster and pulls in every later
    unassigned candidate overlapping the seed by more than ``threshold``.
    Members are only compared with the seed, so a cluster is not closed
    under transitivity and membership depends on input order.
    """
    clusters: List[List[MatchCandidate]] = []
    assigned = set()

    for index, seed in enumerate(candidates):
        if index in assigned:
            continue
        cluster = [seed]
        assigned.add(index)

        for other_index in range(len(candidates)):
            if other_index in assigned:
                continue
            other = candidates[other_index]
            if jaccard(seed.photo_ids, other.photo_ids) > threshold:
                cluster.append(other)
                assigned.add(other_index)

        clusters.append(cluster)

    return clusters


def select_cluster_representatives(candidates: Sequence[MatchCandidate],
                                   policy: Optional[DedupPolicy] = None) -> List[MatchCandidate]:
    """
    Stage E: keep one candidate per overlap cluster.

    The representative maximizes ``confidence * photo_count`` (first wins on
    ties). Output is sorted by confidence, highest first.
    """
    policy = policy or DedupPolicy()
    representatives = []

    for cluster in identify_clusters(candidates, policy.cluster_jaccard):
        best = cluster[0]
        for candidate in cluster[1:]:
            if candidate.confidence * candidate.photo_count > best.confidence * best.photo_count:
                best = candidate
        representatives.append(best)

    return sorted(representatives, key=lambda c: c.confidence, reverse=True)


def dedupe(candidates: Iterable[MatchCandidate],
           policy: Optional[DedupPolicy] = None,
           advanced: bool = True) -> List[MatchCandidate]:
    """
    Run the deduplication stages in order.

    Args:
        candidates: Snapshot of raw candidates; not modified
        policy: Thresholds; reference defaults when omitted
        advanced: Also run the clustering pass (stage E)

    Returns:
        Deduplicated candidates
    """
    policy = policy or DedupPolicy()
    raw = list(candidates)
    if not raw:
        return []

    valid = filter_valid(raw, policy)
    result = remove_subsets(valid)
    result = remove_reciprocals(result)
    result = remove_temporal_overlaps(result, policy)
    if advanced:
        result = select_cluster_representatives(result, policy)

    logger.debug(f"Deduplicated {len(raw)} raw candidates to {len(result)} ({len(valid)} passed validation)")
    return result
