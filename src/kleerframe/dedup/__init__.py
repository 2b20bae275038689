"""Perceptual near-duplicate detection for photo collections."""

from .model import Photo, TimeWindow, MatchCandidate, MatchGroup, MatchStatus, SimilarPhoto
from .hash import compute_fingerprint, fingerprint_image, select_backend
from .distance import hamming_distance, confidence, are_similar
from .candidates import CandidateGenerator
from .cluster import dedupe
from .controls import PipelineControls
from .pipeline import PipelineSnapshot, run_pipeline, run_pipeline_sync
from .search import SimilaritySearch, find_similar

__all__ = [
    "Photo",
    "TimeWindow",
    "MatchCandidate",
    "MatchGroup",
    "MatchStatus",
    "SimilarPhoto",
    "compute_fingerprint",
    "fingerprint_image",
    "select_backend",
    "hamming_distance",
    "confidence",
    "are_similar",
    "CandidateGenerator",
    "dedupe",
    "PipelineControls",
    "PipelineSnapshot",
    "run_pipeline",
    "run_pipeline_sync",
    "SimilaritySearch",
    "find_similar",
]
