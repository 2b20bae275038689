"""
Data models for photos and match results.

Photos are owned by the external catalog and never mutated here. Match
candidates are produced by the candidate generator and only ever filtered or
re-labelled (status) downstream.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Tuple


@dataclass(frozen=True)
class Photo:
    """A catalog photo. Timestamps are epoch milliseconds."""
    id: str
    uri: str
    filename: str
    creation_time: int
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "uri": self.uri,
            "filename": self.filename,
            "creation_time": self.creation_time,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Photo":
        return cls(
            id=str(data["id"]),
            uri=data["uri"],
            filename=data["filename"],
            creation_time=int(data["creation_time"]),
            width=int(data["width"]),
            height=int(data["height"]),
        )


@dataclass(frozen=True)
class TimeWindow:
    """Closed time interval in epoch milliseconds."""
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"TimeWindow start {self.start} is after end {self.end}")

    @classmethod
    def around(cls, center: int, half_width: int) -> "TimeWindow":
        return cls(start=center - half_width, end=center + half_width)

    @property
    def span(self) -> int:
        return self.end - self.start

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp <= self.end

    def overlaps(self, other: "TimeWindow") -> bool:
        """True when the windows share a positive-length stretch of time."""
        return max(self.start, other.start) < min(self.end, other.end)

    def overlap_ratio(self, other: "TimeWindow") -> float:
        """
        Fraction of the combined extent covered by both windows.

        Returns 0.0 when the windows do not intersect (touching endpoints
        count as no intersection).
        """
        overlap_start = max(self.start, other.start)
        overlap_end = min(self.end, other.end)
        if overlap_start >= overlap_end:
            return 0.0

        total = max(self.end, other.end) - min(self.start, other.start)
        return (overlap_end - overlap_start) / total

    def to_dict(self) -> Dict[str, int]:
        return {"start": self.start, "end": self.end}


class MatchStatus(Enum):
    """Review state of a match candidate."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MatchCandidate:
    """
    A proposed group of near-duplicate photos.

    One candidate is produced per seed photo that has at least one neighbor,
    so several candidates may describe the same physical cluster.
    """
    id: str
    photos: Tuple[Photo, ...]                  # ascending by creation_time
    average_hamming_distance: float
    confidence: float                          # 0..100
    time_window: TimeWindow
    status: MatchStatus = MatchStatus.PENDING

    def __post_init__(self) -> None:
        if len({photo.id for photo in self.photos}) < 2:
            raise ValueError(f"Match candidate {self.id} needs at least two distinct photos")

    @property
    def photo_ids(self) -> FrozenSet[str]:
        return frozenset(photo.id for photo in self.photos)

    @property
    def photo_count(self) -> int:
        return len(self.photos)

    def with_status(self, status: MatchStatus) -> "MatchCandidate":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "photos": [photo.to_dict() for photo in self.photos],
            "average_hamming_distance": self.average_hamming_distance,
            "confidence": self.confidence,
            "time_window": self.time_window.to_dict(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchCandidate":
        window = data["time_window"]
        return cls(
            id=data["id"],
            photos=tuple(Photo.from_dict(p) for p in data["photos"]),
            average_hamming_distance=float(data["average_hamming_distance"]),
            confidence=float(data["confidence"]),
            time_window=TimeWindow(start=int(window["start"]), end=int(window["end"])),
            status=MatchStatus(data.get("status", MatchStatus.PENDING.value)),
        )


@dataclass(frozen=True)
class MatchGroup:
    """Display view over an approved match candidate."""
    id: str
    photos: Tuple[Photo, ...]
    time_window: TimeWindow
    average_time: float

    @classmethod
    def from_candidate(cls, candidate: MatchCandidate) -> "MatchGroup":
        average_time = sum(p.creation_time for p in candidate.photos) / len(candidate.photos)
        return cls(
            id=candidate.id,
            photos=candidate.photos,
            time_window=candidate.time_window,
            average_time=average_time,
        )


@dataclass(frozen=True)
class SimilarPhoto:
    """A search hit: a photo and how close it is to the reference."""
    photo: Photo
    distance: int
    similarity: float


@dataclass
class GeneratorStats:
    """Running counters for one candidate-generation run."""
    total: int = 0
    processed: int = 0
    hashed: int = 0
    failed: int = 0
    candidates: int = 0
    failed_ids: List[str] = field(default_factory=list)

    def snapshot(self) -> "GeneratorStats":
        """Independent copy of the current counters."""
        return replace(self, failed_ids=list(self.failed_ids))
