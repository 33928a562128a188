"""
Run and maintenance reports.

A RunReport is assembled once at the end of a reconciliation run and never
changed afterwards. Writing it to disk is a convenience; a failed write is
logged and the report is still returned to the caller.
"""

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .logger import get_logger
from .models import FlagStatistics

logger = get_logger()

SAMPLE_SIZE = 10
STALE_FLAG_WARNING = 1000


class RunStatistics:
    """Counters for one run; safe to update from matching worker threads."""

    FIELDS = (
        "total_sponsors",
        "total_targets",
        "matches_found",
        "flags_updated",
        "flags_removed",
        "errors",
        "targets_processed",
    )

    def __init__(self):
        self._lock = threading.Lock()
        for name in self.FIELDS:
            setattr(self, name, 0)

    def increment(self, name: str, amount: int = 1) -> int:
        if name not in self.FIELDS:
            raise KeyError(name)
        with self._lock:
            value = getattr(self, name) + amount
            setattr(self, name, value)
            return value

    def to_dict(self) -> Dict[str, int]:
        with self._lock:
            return {
                "totalSponsors": self.total_sponsors,
                "totalTargets": self.total_targets,
                "matchesFound": self.matches_found,
                "flagsUpdated": self.flags_updated,
                "flagsRemoved": self.flags_removed,
                "errors": self.errors,
                "targetsProcessed": self.targets_processed,
            }


@dataclass(frozen=True)
class MatchSample:
    target_name: str
    sponsor_name: str
    score: float

    def to_dict(self) -> Dict[str, str]:
        return {
            "targetName": self.target_name,
            "sponsorName": self.sponsor_name,
            "similarityPercent": f"{self.score * 100:.1f}%",
        }


@dataclass(frozen=True)
class ErrorSample:
    target_id: Any
    target_name: str
    error_message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetId": self.target_id,
            "targetName": self.target_name,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class RunReport:
    timestamp: datetime
    mode: str
    statistics: Dict[str, int]
    top_matches: Tuple[MatchSample, ...] = ()
    error_sample: Tuple[ErrorSample, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict)
    processing_seconds: float = 0.0
    cancelled: bool = False
    recommendations: Tuple[str, ...] = ()

    @property
    def match_rate(self) -> float:
        total = self.statistics.get("totalTargets", 0)
        return self.statistics.get("matchesFound", 0) / total * 100 if total else 0.0

    @property
    def error_rate(self) -> float:
        total = self.statistics.get("totalTargets", 0)
        return self.statistics.get("errors", 0) / total * 100 if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "mode": self.mode,
            "cancelled": self.cancelled,
            "options": self.options,
            "statistics": dict(self.statistics),
            "summary": {
                "processingTime": f"{self.processing_seconds:.2f} seconds",
                "matchRate": f"{self.match_rate:.2f}%",
                "errorRate": f"{self.error_rate:.2f}%",
            },
            "topMatches": [m.to_dict() for m in self.top_matches],
            "errorSample": [e.to_dict() for e in self.error_sample],
            "recommendations": list(self.recommendations),
        }


def top_matches(samples: List[MatchSample], limit: int = SAMPLE_SIZE) -> Tuple[MatchSample, ...]:
    # sorted() is stable: equal scores keep processing order
    return tuple(sorted(samples, key=lambda s: s.score, reverse=True)[:limit])


def run_recommendations(
    statistics: Dict[str, int],
    low_match_rate: float,
    large_directory_size: int,
) -> Tuple[str, ...]:
    recommendations = []
    total = statistics["totalTargets"]
    rate = statistics["matchesFound"] / total * 100 if total else 0.0
    if total and rate < low_match_rate and statistics["totalSponsors"] > large_directory_size:
        recommendations.append(
            f"Match rate {rate:.2f}% is low for a directory of "
            f"{statistics['totalSponsors']} sponsors; check name data or lower the threshold"
        )
    if statistics["errors"]:
        recommendations.append(
            f"{statistics['errors']} targets failed; see errorSample and the log for details"
        )
    return tuple(recommendations)


def save_report(report: RunReport, directory: Path, prefix: str = "sponsor_update_report") -> Optional[Path]:
    """Write report as JSON under directory; returns the path or None on failure."""
    path = Path(directory) / f"{prefix}_{report.timestamp.strftime('%Y-%m-%d')}.json"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False, default=str)
    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to save report", path=str(path), error=str(e))
        return None
    logger.info(f"Report saved to: {path}")
    return path


def log_run_report(report: RunReport) -> None:
    stats = report.statistics
    logger.info(f"=== Sponsor Flag Update Report ({report.mode}) ===")
    logger.info(f"Total Targets: {stats['totalTargets']:,}")
    logger.info(f"Total Sponsors: {stats['totalSponsors']:,}")
    logger.info(f"Matches Found: {stats['matchesFound']:,}")
    logger.info(f"Flags Updated: {stats['flagsUpdated']:,}")
    logger.info(f"Flags Removed: {stats['flagsRemoved']:,}")
    logger.info(f"Errors: {stats['errors']:,}")
    logger.info(f"Match Rate: {report.match_rate:.2f}%")
    logger.info(f"Processing Time: {report.processing_seconds:.2f} seconds")
    if report.cancelled:
        logger.warning("Run was cancelled before all targets were processed")

    for i, match in enumerate(report.top_matches, 1):
        logger.info(f'{i}. "{match.target_name}" -> "{match.sponsor_name}" ({match.score * 100:.1f}%)')
    for i, error in enumerate(report.error_sample, 1):
        logger.warning(f"{i}. {error.target_name}: {error.error_message}")
    for recommendation in report.recommendations:
        logger.info(f"Recommendation: {recommendation}")


@dataclass(frozen=True)
class MaintenanceReport:
    """Coverage snapshot of the target store against the sponsor directory."""

    timestamp: datetime
    flags: FlagStatistics
    active_sponsors: int
    recommendations: Tuple[str, ...] = ()
    results: Dict[str, Any] = field(default_factory=dict)

    @property
    def sponsor_coverage(self) -> float:
        total = self.flags.total_targets
        return self.flags.flagged / total * 100 if total else 0.0

    @property
    def data_integrity(self) -> float:
        # Share of flagged targets that also carry a sponsor reference
        flagged = self.flags.flagged
        return self.flags.matched / flagged * 100 if flagged else 100.0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "timestamp": self.timestamp.isoformat(),
            "targets": self.flags.to_dict(),
            "sponsors": {"activeSponsors": self.active_sponsors},
            "metrics": {
                "sponsorCoverage": f"{self.sponsor_coverage:.2f}%",
                "matchRate": f"{self.flags.match_rate:.2f}%",
                "dataIntegrity": f"{self.data_integrity:.2f}%",
            },
            "recommendations": list(self.recommendations),
        }
        if self.results:
            data["maintenanceResults"] = self.results
        return data


def build_maintenance_report(
    flags: FlagStatistics,
    active_sponsors: int,
    timestamp: datetime,
    staleness_days: int,
    results: Optional[Dict[str, Any]] = None,
) -> MaintenanceReport:
    recommendations = []
    if flags.never_updated > 0:
        recommendations.append(
            f"Run full update for {flags.never_updated} targets that have never been processed"
        )
    if flags.stale > STALE_FLAG_WARNING:
        recommendations.append(
            f"{flags.stale} targets have stale flags (>{staleness_days} days old)"
        )
    if active_sponsors > flags.flagged * 2:
        recommendations.append(
            "Sponsor directory has significantly more active sponsors than flagged targets suggest"
        )

    report = MaintenanceReport(
        timestamp=timestamp,
        flags=flags,
        active_sponsors=active_sponsors,
        recommendations=tuple(recommendations),
        results=dict(results or {}),
    )

    logger.info("=== Sponsor Maintenance Report ===")
    logger.info(f"Total Targets: {flags.total_targets:,}")
    logger.info(f"Flagged Targets: {flags.flagged:,}")
    logger.info(f"Matched Targets: {flags.matched:,}")
    logger.info(f"Sponsor Coverage: {report.sponsor_coverage:.2f}%")
    logger.info(f"Match Rate: {flags.match_rate:.2f}%")
    logger.info(f"Data Integrity: {report.data_integrity:.2f}%")
    logger.info(f"Last Update: {flags.last_update or 'Never'}")
    for recommendation in recommendations:
        logger.info(f"Recommendation: {recommendation}")

    return report
