"""
Tests for run and maintenance reports.
"""

import json

import pytest

from sponsormatch.models import FlagStatistics
from sponsormatch.report import (
    ErrorSample,
    MatchSample,
    RunReport,
    RunStatistics,
    build_maintenance_report,
    run_recommendations,
    save_report,
    top_matches,
)


@pytest.fixture
def report(now):
    return RunReport(
        timestamp=now,
        mode="full",
        statistics={
            "totalSponsors": 3,
            "totalTargets": 8,
            "matchesFound": 2,
            "flagsUpdated": 2,
            "flagsRemoved": 0,
            "errors": 1,
            "targetsProcessed": 8,
        },
        top_matches=(MatchSample("ACME CORP.", "Acme Corporation", 1.0),),
        error_sample=(ErrorSample(4, "Broken Co", "scorer exploded"),),
        options={"threshold": 0.85, "dryRun": False},
        processing_seconds=1.234,
    )


class TestRunStatistics:
    """Test the shared run counters."""

    def test_increment_returns_new_value(self):
        stats = RunStatistics()
        assert stats.increment("errors") == 1
        assert stats.increment("errors", 4) == 5

    def test_unknown_counter(self):
        with pytest.raises(KeyError):
            RunStatistics().increment("bogus")

    def test_to_dict_starts_at_zero(self):
        assert set(RunStatistics().to_dict().values()) == {0}


class TestTopMatches:
    def test_sorted_by_score_and_capped(self):
        samples = [MatchSample(f"T{i}", f"S{i}", i / 20) for i in range(15)]
        top = top_matches(samples)
        assert len(top) == 10
        assert top[0].target_name == "T14"
        assert top[-1].target_name == "T5"

    def test_ties_keep_processing_order(self):
        samples = [MatchSample("first", "A", 0.9), MatchSample("second", "B", 0.9)]
        assert [s.target_name for s in top_matches(samples)] == ["first", "second"]


class TestRunReport:
    """Test report rates and serialization."""

    def test_rates(self, report):
        assert report.match_rate == 25.0
        assert report.error_rate == 12.5

    def test_rates_with_no_targets(self, now):
        empty = RunReport(timestamp=now, mode="incremental", statistics=RunStatistics().to_dict())
        assert empty.match_rate == 0.0
        assert empty.error_rate == 0.0

    def test_to_dict(self, report):
        data = report.to_dict()

        assert data["timestamp"] == "2026-10-18T12:00:00"
        assert data["summary"] == {
            "processingTime": "1.23 seconds",
            "matchRate": "25.00%",
            "errorRate": "12.50%",
        }
        assert data["topMatches"] == [{
            "targetName": "ACME CORP.",
            "sponsorName": "Acme Corporation",
            "similarityPercent": "100.0%",
        }]
        assert data["errorSample"] == [{
            "targetId": 4,
            "targetName": "Broken Co",
            "errorMessage": "scorer exploded",
        }]

    def test_report_is_frozen(self, report):
        with pytest.raises(AttributeError):
            report.mode = "incremental"


class TestRecommendations:
    def test_low_match_rate_on_large_directory(self):
        stats = {"totalTargets": 100, "matchesFound": 1, "totalSponsors": 5000, "errors": 0}
        recommendations = run_recommendations(stats, low_match_rate=5.0, large_directory_size=1000)
        assert len(recommendations) == 1
        assert "1.00%" in recommendations[0]

    def test_healthy_run(self):
        stats = {"totalTargets": 100, "matchesFound": 40, "totalSponsors": 5000, "errors": 0}
        assert run_recommendations(stats, low_match_rate=5.0, large_directory_size=1000) == ()

    def test_errors(self):
        stats = {"totalTargets": 10, "matchesFound": 5, "totalSponsors": 10, "errors": 2}
        assert run_recommendations(stats, 5.0, 1000) == (
            "2 targets failed; see errorSample and the log for details",
        )


class TestSaveReport:
    """Test writing reports to disk."""

    def test_dated_file_name(self, report, tmp_path):
        path = save_report(report, tmp_path)

        assert path == tmp_path / "sponsor_update_report_2026-10-18.json"
        assert json.loads(path.read_text())["mode"] == "full"

    def test_custom_prefix(self, report, tmp_path):
        path = save_report(report, tmp_path, prefix="nightly")
        assert path.name == "nightly_2026-10-18.json"

    def test_failure_returns_none(self, report, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        assert save_report(report, blocker) is None


class TestMaintenanceReport:
    """Test coverage metrics and recommendations."""

    def test_metrics(self, now):
        flags = FlagStatistics(total_targets=200, flagged=50, matched=45)
        report = build_maintenance_report(flags, active_sponsors=60, timestamp=now, staleness_days=30)

        assert report.sponsor_coverage == 25.0
        assert report.data_integrity == 90.0
        assert report.recommendations == ()

    def test_integrity_with_nothing_flagged(self, now):
        report = build_maintenance_report(FlagStatistics(), active_sponsors=0, timestamp=now, staleness_days=30)
        assert report.data_integrity == 100.0
        assert report.sponsor_coverage == 0.0

    def test_recommendations(self, now):
        flags = FlagStatistics(total_targets=5000, flagged=10, matched=10, never_updated=7, stale=1500)
        report = build_maintenance_report(flags, active_sponsors=100, timestamp=now, staleness_days=30)

        assert report.recommendations == (
            "Run full update for 7 targets that have never been processed",
            "1500 targets have stale flags (>30 days old)",
            "Sponsor directory has significantly more active sponsors than flagged targets suggest",
        )

    def test_results_included_in_dict(self, now):
        report = build_maintenance_report(
            FlagStatistics(), active_sponsors=0, timestamp=now, staleness_days=30,
            results={"updated": 3},
        )
        assert report.to_dict()["maintenanceResults"] == {"updated": 3}
