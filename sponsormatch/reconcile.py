"""
Sponsor flag reconciliation job.

Loads the active sponsor directory and a slice of the target store, builds
the lookup index, matches every target and writes the decision back, then
reports. A full run looks at every target; an incremental run looks at the
stale ones only (never checked, or checked longer ago than the staleness
window), oldest first.

Fatal conditions (nothing to match, a store that cannot be reached) stop
the run with an exception. Anything that goes wrong for a single target is
counted, sampled into the report and skipped.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional

from .cleanup import cleanup_orphaned_flags
from .config import ReconcileConfig
from .errors import DatastoreConnectionError, FatalRunError
from .index import LookupIndex
from .logger import get_logger
from .matcher import Matcher, MatchResult
from .models import TargetRecord
from .report import (
    SAMPLE_SIZE,
    ErrorSample,
    MatchSample,
    RunReport,
    RunStatistics,
    log_run_report,
    run_recommendations,
    save_report,
    top_matches,
)
from .repositories import (
    JsonSponsorRepository,
    SponsorRepository,
    SqlTargetRepository,
    TargetRepository,
)
from .retry import RetryError, call_with_retry

logger = get_logger()


class RunState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    INDEXING = "indexing"
    MATCHING = "matching"
    PERSISTING = "persisting"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class RunMode(Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass(frozen=True)
class TargetOutcome:
    """Matching result for one target: a match, no match, or an error."""

    target: TargetRecord
    match: Optional[MatchResult] = None
    error: Optional[str] = None


class _RunContext:
    """Per-run accumulators shared by matching and persistence workers."""

    def __init__(self, total: int):
        self.total = total
        self.stats = RunStatistics()
        self.match_samples: List[MatchSample] = []
        self.error_samples: List[ErrorSample] = []
        self._lock = threading.Lock()

    def add_match(self, target: TargetRecord, match: MatchResult) -> None:
        with self._lock:
            self.match_samples.append(MatchSample(target.name, match.sponsor.name, match.score))

    def add_error(self, target: TargetRecord, exc: Exception) -> None:
        self.stats.increment("errors")
        logger.record_target_failure(type(exc).__name__)
        with self._lock:
            if len(self.error_samples) < SAMPLE_SIZE:
                self.error_samples.append(ErrorSample(target.id, target.name, str(exc)))


class ReconciliationJob:
    """
    One reconciliation pipeline bound to a sponsor and a target repository.

    Args:
        sponsors: Sponsor directory (read only)
        targets: Target store whose flag columns are updated
        config: Thresholds, window and batch settings (default: ReconcileConfig())
        clock: Timestamp source for writes and reports (default: datetime.now)
        cancel_event: Set it to stop the run between targets
    """

    def __init__(
        self,
        sponsors: SponsorRepository,
        targets: TargetRepository,
        config: Optional[ReconcileConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.sponsors = sponsors
        self.targets = targets
        self.config = config or ReconcileConfig()
        self.clock = clock or datetime.now
        self.cancel_event = cancel_event or threading.Event()
        self.state = RunState.IDLE
        self.state_history: List[RunState] = [RunState.IDLE]

    @classmethod
    def from_config(
        cls,
        config: Optional[ReconcileConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> "ReconciliationJob":
        """Open the sponsor directory and target store at the configured paths."""
        config = config or ReconcileConfig.from_env()
        return cls(
            JsonSponsorRepository(config.directory_path),
            SqlTargetRepository(config.database_path),
            config=config,
            clock=clock,
            cancel_event=cancel_event,
        )

    # --- entry points ---------------------------------------------------------

    def run_full(self, reset_flags: bool = False, dry_run: bool = False) -> RunReport:
        """Match every target; optionally clear all flags first."""
        return self.run(RunMode.FULL, reset_flags=reset_flags, dry_run=dry_run)

    def run_incremental(self, dry_run: bool = False) -> RunReport:
        """Match up to batch_size stale targets, recording a decision for each."""
        return self.run(RunMode.INCREMENTAL, dry_run=dry_run)

    def cleanup_orphans(self, dry_run: bool = False) -> int:
        return cleanup_orphaned_flags(
            self.sponsors,
            self.targets,
            chunk_size=self.config.update_chunk_size,
            dry_run=dry_run,
            clock=self.clock,
        )

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(self, mode: RunMode, reset_flags: bool = False, dry_run: bool = False) -> RunReport:
        if reset_flags and mode is not RunMode.FULL:
            raise ValueError("reset_flags is only supported for full runs")

        self.state_history = [RunState.IDLE]
        self.state = RunState.IDLE
        started = time.monotonic()
        config = self.config

        logger.info(
            f"Starting {mode.value} sponsor flag update",
            threshold=config.threshold,
            batch_size=config.batch_size,
            dry_run=dry_run,
            reset_flags=reset_flags,
        )

        self._transition(RunState.LOADING)
        sponsors = self._load(self.sponsors.fetch_active_sponsors, "active sponsors")
        if mode is RunMode.FULL:
            fetch_targets = self.targets.fetch_all_targets
        else:
            def fetch_targets():
                return self.targets.fetch_stale_targets(
                    config.staleness_days, config.batch_size, now=self.clock()
                )
        targets = self._load(fetch_targets, "targets")

        if not sponsors:
            self._fail("No active sponsors found in sponsor directory")

        ctx = _RunContext(total=len(targets))
        ctx.stats.increment("total_sponsors", len(sponsors))

        if not targets:
            # Nothing stale is the normal steady state; an empty store is not
            if mode is RunMode.INCREMENTAL and self._store_has_targets():
                logger.info("No stale targets found - all flags are up to date")
                self._transition(RunState.REPORTING)
                report = self._report(mode, ctx, started, reset_flags, dry_run)
                self._transition(RunState.DONE)
                return report
            self._fail("No targets found in target store")

        ctx.stats.increment("total_targets", len(targets))
        logger.info(f"Loaded {len(sponsors)} sponsors and {len(targets)} targets")

        # A cancelled run never re-matches, so it must not clear flags first
        if reset_flags and not dry_run and not self.cancel_event.is_set():
            removed = self._guard_fatal(lambda: self.targets.reset_all_flags(self.clock()))
            ctx.stats.increment("flags_removed", removed)
            logger.info("All sponsor flags reset", previously_flagged=removed)

        self._transition(RunState.INDEXING)
        matcher = Matcher(LookupIndex.build(sponsors), config.threshold)

        total_batches = (len(targets) + config.batch_size - 1) // config.batch_size
        for batch_number, start in enumerate(range(0, len(targets), config.batch_size), 1):
            if self.cancel_event.is_set():
                break
            batch = targets[start:start + config.batch_size]
            logger.info(f"Processing batch {batch_number}/{total_batches} ({len(batch)} targets)")

            self._transition(RunState.MATCHING)
            outcomes = self._map(lambda t: self._match_target(t, matcher, mode, ctx), batch)

            self._transition(RunState.PERSISTING)
            pending = [o for o in outcomes if o is not None and o.error is None]
            self._guard_fatal(lambda: self._map(lambda o: self._persist(o, mode, dry_run, ctx), pending))

        self._transition(RunState.REPORTING)
        report = self._report(mode, ctx, started, reset_flags, dry_run)
        self._transition(RunState.DONE)
        return report

    # --- stages -----------------------------------------------------------------

    def _load(self, fetch: Callable[[], list], description: str) -> list:
        try:
            return call_with_retry(
                fetch,
                description=f"loading {description}",
                max_retries=self.config.load_retries,
                base_delay=self.config.retry_delay,
                exceptions=(DatastoreConnectionError,),
                logger=logger,
            )
        except RetryError as e:
            self._transition(RunState.FAILED)
            logger.critical(f"Could not load {description}", error=str(e))
            raise DatastoreConnectionError(f"Could not load {description}: {e}") from e

    def _store_has_targets(self) -> bool:
        stats = self._load(
            lambda: self.targets.flag_statistics(self.config.staleness_days, now=self.clock()),
            "target statistics",
        )
        return stats.total_targets > 0

    def _match_target(
        self, target: TargetRecord, matcher: Matcher, mode: RunMode, ctx: _RunContext
    ) -> Optional[TargetOutcome]:
        if self.cancel_event.is_set():
            return None

        logger.record_target_attempt(mode.value)
        try:
            match = matcher.match(target.name)
        except Exception as e:
            logger.error(
                f"Error matching target {target.name}",
                target_id=target.id,
                error=str(e),
            )
            ctx.add_error(target, e)
            outcome = TargetOutcome(target, error=str(e))
        else:
            if match is not None:
                ctx.stats.increment("matches_found")
                ctx.add_match(target, match)
                logger.record_target_match(mode.value)
                logger.debug(
                    f'Match: "{target.name}" -> "{match.sponsor.name}"',
                    score=round(match.score, 4),
                    target_variant=match.target_variant,
                    sponsor_variant=match.sponsor_variant,
                )
            outcome = TargetOutcome(target, match=match)

        processed = ctx.stats.increment("targets_processed")
        if processed % self.config.log_every == 0:
            logger.info(f"Progress: {processed}/{ctx.total} ({round(processed / ctx.total * 100)}%)")
        return outcome

    def _persist(self, outcome: TargetOutcome, mode: RunMode, dry_run: bool, ctx: _RunContext) -> None:
        target = outcome.target
        match = outcome.match

        # A full run only adds flags; an incremental run records every decision
        if match is None and mode is RunMode.FULL:
            return
        if dry_run:
            return

        try:
            if match is not None:
                self.targets.update_flag(target.id, True, match.sponsor.id, self.clock())
                ctx.stats.increment("flags_updated")
            else:
                self.targets.update_flag(target.id, False, None, self.clock())
                if target.is_sponsor:
                    ctx.stats.increment("flags_removed")
        except DatastoreConnectionError:
            raise
        except Exception as e:
            logger.error(
                f"Error updating target {target.name}",
                target_id=target.id,
                error=str(e),
            )
            ctx.add_error(target, e)

    def _report(
        self, mode: RunMode, ctx: _RunContext, started: float, reset_flags: bool, dry_run: bool
    ) -> RunReport:
        config = self.config
        statistics = ctx.stats.to_dict()
        report = RunReport(
            timestamp=self.clock(),
            mode=mode.value,
            statistics=statistics,
            top_matches=top_matches(ctx.match_samples),
            error_sample=tuple(ctx.error_samples),
            options={
                "threshold": config.threshold,
                "batchSize": config.batch_size,
                "stalenessDays": config.staleness_days,
                "workers": config.workers,
                "dryRun": dry_run,
                "resetFlags": reset_flags,
            },
            processing_seconds=time.monotonic() - started,
            cancelled=self.cancel_event.is_set(),
            recommendations=run_recommendations(
                statistics, config.low_match_rate, config.large_directory_size
            ),
        )

        log_run_report(report)
        if config.report_dir is not None:
            save_report(report, config.report_dir)
        return report

    # --- helpers ------------------------------------------------------------------

    def _map(self, fn: Callable, items: Iterable) -> list:
        if self.config.workers == 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            return list(pool.map(fn, items))

    def _guard_fatal(self, operation: Callable):
        try:
            return operation()
        except DatastoreConnectionError as e:
            self._transition(RunState.FAILED)
            logger.critical("Target store became unavailable; aborting run", error=str(e))
            raise

    def _fail(self, message: str) -> None:
        self._transition(RunState.FAILED)
        logger.critical(message)
        raise FatalRunError(message)

    def _transition(self, state: RunState) -> None:
        if self.state is not state:
            self.state = state
            self.state_history.append(state)
            logger.debug("Run state changed", state=state.value)
