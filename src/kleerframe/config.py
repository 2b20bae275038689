from dataclasses import dataclass


MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


@dataclass(frozen=True)
class DedupPolicy:
    """Thresholds used by the deduplication stages."""

    # Stage A: validity filter
    min_pair_confidence: float = 70.0
    max_average_distance: float = 25.0
    max_window_span_ms: int = 24 * HOUR_MS

    # Stage D: photo overlap (Jaccard) above which overlapping windows collapse
    overlap_jaccard: float = 0.5

    # Stage E: photo overlap that puts two candidates in the same cluster
    cluster_jaccard: float = 0.3


@dataclass
class Settings:
    grid_size: int = 32
    batch_size: int = 5
    window_minutes: float = 15.0
    pair_threshold: int = 20
    similar_threshold: int = 10
    search_threshold: int = 20
    batch_confidence_slope: float = 3.0
    search_confidence_slope: float = 4.0
    min_pair_confidence: float = 70.0
    max_average_distance: float = 25.0
    max_window_span_hours: float = 24.0
    overlap_jaccard: float = 0.5
    cluster_jaccard: float = 0.3
    initial_view_quota: int = 100

    @property
    def window_millis(self) -> int:
        """Half-width of the matching window in epoch milliseconds."""
        return int(self.window_minutes * MINUTE_MS)

    def dedup_policy(self) -> DedupPolicy:
        return DedupPolicy(
            min_pair_confidence=self.min_pair_confidence,
            max_average_distance=self.max_average_distance,
            max_window_span_ms=int(self.max_window_span_hours * HOUR_MS),
            overlap_jaccard=self.overlap_jaccard,
            cluster_jaccard=self.cluster_jaccard,
        )

    def validate(self) -> "Settings":
        """
        Check that every tunable is in range.

        Raises:
            ValueError: If a value cannot drive the pipeline
        """
        if self.grid_size < 16:
            raise ValueError(f"grid_size must be at least 16, got {self.grid_size}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.window_minutes < 0:
            raise ValueError(f"window_minutes must be non-negative, got {self.window_minutes}")
        for name in ("pair_threshold", "similar_threshold", "search_threshold"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ("batch_confidence_slope", "search_confidence_slope"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("overlap_jaccard", "cluster_jaccard"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.initial_view_quota < 0:
            raise ValueError(f"initial_view_quota must be non-negative, got {self.initial_view_quota}")
        return self
