"""
JSON reports of match results.

A report records which photos were scanned, the deduplicated matches, and
summary counts. It is written for people and downstream tooling, not as a
fingerprint store.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..dedup.model import MatchCandidate
from ..dedup.pipeline import PipelineSnapshot
from ..logging import get_logger

logger = get_logger(__name__)

REPORT_VERSION = "1.0"


@dataclass(frozen=True)
class MatchReport:
    """Complete description of one scan."""
    version: str
    source: str
    generated_at: str
    summary: Dict[str, Any]
    matches: List[MatchCandidate]
    fingerprints: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "version": self.version,
            "source": self.source,
            "generated_at": self.generated_at,
            "summary": self.summary,
            "matches": [match.to_dict() for match in self.matches],
        }
        if self.fingerprints is not None:
            result["fingerprints"] = self.fingerprints
        return result


def build_report(snapshot: PipelineSnapshot,
                 source: str,
                 fingerprints: Optional[Mapping[str, str]] = None) -> MatchReport:
    """
    Build a report from a pipeline snapshot.

    Args:
        snapshot: Final (or partial) pipeline snapshot
        source: Description of what was scanned (usually a directory)
        fingerprints: Optional photo id -> fingerprint mapping to include
    """
    stats = snapshot.stats
    summary = {
        "photos_total": snapshot.total,
        "photos_processed": snapshot.processed,
        "photos_hashed": stats.hashed,
        "photos_failed": stats.failed,
        "raw_candidates": snapshot.raw_count,
        "matches": len(snapshot.candidates),
        "photos_in_matches": len({pid for match in snapshot.candidates for pid in match.photo_ids}),
        "complete": snapshot.final and not snapshot.cancelled,
    }
    return MatchReport(
        version=REPORT_VERSION,
        source=source,
        generated_at=datetime.now(timezone.utc).isoformat(),
        summary=summary,
        matches=list(snapshot.candidates),
        fingerprints=dict(sorted(fingerprints.items())) if fingerprints is not None else None,
    )


def write_report_json(report: MatchReport, path: Path) -> Path:
    """
    Write a report to ``path``, creating parent directories.

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
    except OSError as exc:
        logger.error(f"Failed to write report to {path}: {exc}")
        raise

    logger.info(f"Wrote report to {path}")
    return path


def load_report_json(path: Path) -> MatchReport:
    """Load a report written by ``write_report_json``."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    report = MatchReport(
        version=data["version"],
        source=data["source"],
        generated_at=data["generated_at"],
        summary=data["summary"],
        matches=[MatchCandidate.from_dict(m) for m in data.get("matches", [])],
        fingerprints=data.get("fingerprints"),
    )
    logger.info(f"Loaded report from {path} with {len(report.matches)} matches")
    return report
