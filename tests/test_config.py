"""
Tests for runtime configuration.
"""

from pathlib import Path

import pytest

from sponsormatch.config import ReconcileConfig

ENV_VARS = [
    "SPONSOR_MATCH_THRESHOLD",
    "SPONSOR_STALENESS_DAYS",
    "SPONSOR_BATCH_SIZE",
    "SPONSOR_UPDATE_CHUNK_SIZE",
    "SPONSOR_LOG_EVERY",
    "SPONSOR_WORKERS",
    "SPONSOR_REPORT_DIR",
    "SPONSOR_DATABASE_PATH",
    "SPONSOR_DIRECTORY_PATH",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No SPONSOR_* variables and no .env in the working directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestReconcileConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        config = ReconcileConfig()

        assert config.threshold == 0.85
        assert config.staleness_days == 30
        assert config.batch_size == 1000
        assert config.update_chunk_size == 100
        assert config.workers == 1
        assert config.report_dir is None

    @pytest.mark.parametrize("overrides", [
        {"threshold": 1.1},
        {"threshold": -0.1},
        {"batch_size": 0},
        {"staleness_days": 0},
        {"workers": 0},
        {"load_retries": -1},
        {"retry_delay": -1.0},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            ReconcileConfig(**overrides)

    def test_threshold_bounds_are_inclusive(self):
        assert ReconcileConfig(threshold=0.0).threshold == 0.0
        assert ReconcileConfig(threshold=1.0).threshold == 1.0


class TestFromEnv:
    """Test building a config from the environment."""

    def test_defaults_without_environment(self, clean_env):
        assert ReconcileConfig.from_env() == ReconcileConfig()

    def test_reads_variables(self, clean_env, monkeypatch):
        monkeypatch.setenv("SPONSOR_MATCH_THRESHOLD", "0.9")
        monkeypatch.setenv("SPONSOR_BATCH_SIZE", "250")
        monkeypatch.setenv("SPONSOR_WORKERS", "4")
        monkeypatch.setenv("SPONSOR_REPORT_DIR", "reports")
        monkeypatch.setenv("SPONSOR_DATABASE_PATH", "/srv/data/companies.db")

        config = ReconcileConfig.from_env()

        assert config.threshold == 0.9
        assert config.batch_size == 250
        assert config.workers == 4
        assert config.report_dir == Path("reports")
        assert config.database_path == Path("/srv/data/companies.db")
        assert config.directory_path == Path("data/sponsors.json")

    def test_blank_values_use_defaults(self, clean_env, monkeypatch):
        monkeypatch.setenv("SPONSOR_STALENESS_DAYS", "  ")
        assert ReconcileConfig.from_env().staleness_days == 30

    def test_bad_number(self, clean_env, monkeypatch):
        monkeypatch.setenv("SPONSOR_BATCH_SIZE", "lots")
        with pytest.raises(ValueError, match="SPONSOR_BATCH_SIZE"):
            ReconcileConfig.from_env()

    def test_out_of_range_value(self, clean_env, monkeypatch):
        monkeypatch.setenv("SPONSOR_MATCH_THRESHOLD", "85")
        with pytest.raises(ValueError):
            ReconcileConfig.from_env()

    def test_reads_dotenv_file(self, clean_env):
        (clean_env / ".env").write_text("SPONSOR_STALENESS_DAYS=14\nSPONSOR_LOG_EVERY=10\n")

        config = ReconcileConfig.from_env()

        assert config.staleness_days == 14
        assert config.log_every == 10

    def test_environment_wins_over_dotenv(self, clean_env, monkeypatch):
        (clean_env / ".env").write_text("SPONSOR_STALENESS_DAYS=14\n")
        monkeypatch.setenv("SPONSOR_STALENESS_DAYS", "7")

        assert ReconcileConfig.from_env().staleness_days == 7
