"""Review of deduplicated match results: viewing, approving, rejecting."""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .config import Settings
from .dedup.model import MatchCandidate, MatchGroup, MatchStatus
from .errors import QuotaExhaustedError
from .logging import get_logger
from .quota import ViewQuota

logger = get_logger(__name__)


class MatchReview:
    """
    A user's pass over a set of match results.

    Viewing a match spends one view from the quota; approved matches become
    MatchGroups for display.
    """

    def __init__(self,
                 candidates: Iterable[MatchCandidate],
                 quota: Optional[ViewQuota] = None,
                 settings: Optional[Settings] = None):
        self._matches: Dict[str, MatchCandidate] = {c.id: c for c in candidates}
        self.quota = quota if quota is not None else ViewQuota.from_settings(settings)

    def __len__(self) -> int:
        return len(self._matches)

    @property
    def matches(self) -> List[MatchCandidate]:
        return list(self._matches.values())

    def get(self, match_id: str) -> MatchCandidate:
        return self._matches[match_id]

    def view(self, match_id: str) -> MatchCandidate:
        """
        Open a match, spending one view.

        Raises:
            KeyError: If the match does not exist
            QuotaExhaustedError: If no views are left
        """
        match = self._matches[match_id]
        if not self.quota.consume():
            raise QuotaExhaustedError("No match views remaining; upgrade for unlimited views")
        return match

    def _set_status(self, match_id: str, status: MatchStatus) -> MatchCandidate:
        updated = self._matches[match_id].with_status(status)
        self._matches[match_id] = updated
        return updated

    def approve(self, match_id: str) -> MatchCandidate:
        return self._set_status(match_id, MatchStatus.APPROVED)

    def reject(self, match_id: str) -> MatchCandidate:
        return self._set_status(match_id, MatchStatus.REJECTED)

    def pending(self) -> List[MatchCandidate]:
        return [m for m in self._matches.values() if m.status is MatchStatus.PENDING]

    def remove_photo(self, photo_id: str) -> int:
        """
        Forget a deleted photo.

        Matches left with fewer than two photos are discarded.

        Returns:
            Number of matches discarded
        """
        discarded = 0
        for match_id, match in list(self._matches.items()):
            if photo_id not in match.photo_ids:
                continue
            remaining = tuple(p for p in match.photos if p.id != photo_id)
            if len(remaining) < 2:
                del self._matches[match_id]
                discarded += 1
            else:
                self._matches[match_id] = replace(match, photos=remaining)

        logger.debug(f"Removed photo {photo_id}; {discarded} matches discarded")
        return discarded

    def match_groups(self) -> List[MatchGroup]:
        """MatchGroups for approved matches, most recent first."""
        groups = [
            MatchGroup.from_candidate(m)
            for m in self._matches.values()
            if m.status is MatchStatus.APPROVED
        ]
        return sorted(groups, key=lambda g: g.average_time, reverse=True)
