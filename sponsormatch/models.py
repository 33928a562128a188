"""
Records exchanged between the matching core and the two datastores.

Sponsor records come from the sponsor directory (document store) and are
read-only. Target records are rows of the employer table (relational store);
the core only ever changes their three flag fields, and always together.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class SponsorRecord:
    """A sponsor of record, as loaded for one run."""

    id: str
    name: str
    secondary_names: Tuple[str, ...] = ()
    active: bool = True


@dataclass(frozen=True)
class TargetRecord:
    """An employer whose sponsor status is being determined."""

    id: Any
    name: str
    is_sponsor: bool = False
    matched_sponsor_id: Optional[str] = None
    flag_updated_at: Optional[datetime] = None

    def with_flag(
        self,
        is_sponsor: bool,
        matched_sponsor_id: Optional[str],
        timestamp: datetime,
    ) -> "TargetRecord":
        """Return a copy with the flag, reference and timestamp replaced as a unit."""
        check_flag_invariant(is_sponsor, matched_sponsor_id)
        return replace(
            self,
            is_sponsor=is_sponsor,
            matched_sponsor_id=matched_sponsor_id,
            flag_updated_at=timestamp,
        )


@dataclass(frozen=True)
class FlagStatistics:
    """Aggregate view of the flag columns of the target store."""

    total_targets: int = 0
    flagged: int = 0
    matched: int = 0
    never_updated: int = 0
    stale: int = 0
    last_update: Optional[datetime] = None
    first_update: Optional[datetime] = None

    @property
    def match_rate(self) -> float:
        """Percentage of targets carrying a sponsor reference."""
        if self.total_targets == 0:
            return 0.0
        return self.matched / self.total_targets * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTargets": self.total_targets,
            "flaggedTargets": self.flagged,
            "matchedTargets": self.matched,
            "neverUpdated": self.never_updated,
            "staleFlags": self.stale,
            "lastUpdate": self.last_update.isoformat() if self.last_update else None,
            "firstUpdate": self.first_update.isoformat() if self.first_update else None,
        }


def check_flag_invariant(is_sponsor: bool, matched_sponsor_id: Optional[str]) -> None:
    """A sponsor reference requires the flag; a cleared flag requires no reference."""
    if matched_sponsor_id is not None and not is_sponsor:
        raise ValueError("matched_sponsor_id set while is_sponsor is False")
