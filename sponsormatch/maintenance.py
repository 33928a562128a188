"""
Maintenance scheduling for sponsor flags.

Decides whether the target store needs another reconciliation pass and, in
automated mode, runs the incremental update and orphan cleanup it calls for.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .config import ReconcileConfig
from .errors import FatalRunError
from .logger import get_logger
from .models import FlagStatistics
from .reconcile import ReconciliationJob
from .report import MaintenanceReport, build_maintenance_report
from .repositories import (
    JsonSponsorRepository,
    SponsorRepository,
    SqlTargetRepository,
    TargetRepository,
)

logger = get_logger()


@dataclass(frozen=True)
class MaintenanceDecision:
    """Whether a run is warranted, and why."""

    needs_update: bool
    reasons: List[str] = field(default_factory=list)
    last_update: Optional[datetime] = None
    days_since_update: Optional[int] = None
    flags: FlagStatistics = field(default_factory=FlagStatistics)
    active_sponsors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "needsUpdate": self.needs_update,
            "reasons": list(self.reasons),
            "lastUpdate": self.last_update.isoformat() if self.last_update else None,
            "daysSinceUpdate": self.days_since_update,
            "stats": {**self.flags.to_dict(), "activeSponsors": self.active_sponsors},
        }


class MaintenanceScheduler:
    """Checks flag freshness and coverage, and runs maintenance when needed."""

    def __init__(
        self,
        sponsors: SponsorRepository,
        targets: TargetRepository,
        config: Optional[ReconcileConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.sponsors = sponsors
        self.targets = targets
        self.config = config or ReconcileConfig()
        self.clock = clock or datetime.now

    @classmethod
    def from_config(
        cls,
        config: Optional[ReconcileConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "MaintenanceScheduler":
        config = config or ReconcileConfig.from_env()
        return cls(
            JsonSponsorRepository(config.directory_path),
            SqlTargetRepository(config.database_path),
            config=config,
            clock=clock,
        )

    def flag_statistics(self) -> FlagStatistics:
        return self.targets.flag_statistics(self.config.staleness_days, now=self.clock())

    def check(self) -> MaintenanceDecision:
        """Evaluate every trigger and collect the reasons that fire."""
        config = self.config
        now = self.clock()
        flags = self.flag_statistics()
        active_sponsors = self.sponsors.count_active()

        reasons = []
        days_since_update = None
        if flags.last_update is None:
            reasons.append("No previous sponsor flag updates found")
        else:
            days_since_update = (now - flags.last_update).days
            if days_since_update >= config.maintenance_interval_days:
                reasons.append("Monthly maintenance due")

        if flags.never_updated > 0 and flags.last_update is not None:
            reasons.append(f"{flags.never_updated} targets have never been checked")

        if flags.flagged == 0 and active_sponsors > 0:
            reasons.append("No sponsor flags set but the sponsor directory has active sponsors")

        if flags.match_rate < config.low_match_rate and active_sponsors > config.large_directory_size:
            reasons.append("Low match rate suggests incomplete flagging")

        decision = MaintenanceDecision(
            needs_update=bool(reasons),
            reasons=reasons,
            last_update=flags.last_update,
            days_since_update=days_since_update,
            flags=flags,
            active_sponsors=active_sponsors,
        )

        logger.info(
            "Maintenance check complete",
            last_update=flags.last_update or "Never",
            days_since_update=days_since_update,
            needs_update=decision.needs_update,
            reasons=reasons,
        )
        return decision

    def maintenance_report(self, results: Optional[Dict[str, Any]] = None) -> MaintenanceReport:
        return build_maintenance_report(
            self.flag_statistics(),
            self.sponsors.count_active(),
            timestamp=self.clock(),
            staleness_days=self.config.staleness_days,
            results=results,
        )

    def run_automated(self, dry_run: bool = False) -> MaintenanceReport:
        """
        Check, then update stale targets and clean orphaned flags if needed.

        Returns:
            MaintenanceReport; when maintenance ran, results holds the counts
            and the reasons that triggered it
        """
        decision = self.check()
        if not decision.needs_update:
            logger.info("No maintenance needed at this time")
            return self.maintenance_report()

        logger.info(f"Maintenance needed: {', '.join(decision.reasons)}")
        job = ReconciliationJob(self.sponsors, self.targets, config=self.config, clock=self.clock)

        try:
            run = job.run_incremental(dry_run=dry_run)
            updated = run.statistics["targetsProcessed"]
            matched = run.statistics["matchesFound"]
        except FatalRunError as e:
            # Cleanup still runs when there is nothing to match
            logger.warning("Incremental update skipped", error=str(e))
            updated = matched = 0

        cleaned = job.cleanup_orphans(dry_run=dry_run)

        logger.info(
            "Automated maintenance complete",
            updated=updated,
            matched=matched,
            cleaned=cleaned,
        )
        return self.maintenance_report(results={
            "updated": updated,
            "matched": matched,
            "cleaned": cleaned,
            "reasons": list(decision.reasons),
            "dryRun": dry_run,
        })
