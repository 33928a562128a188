"""
Runtime configuration for reconciliation runs.

Values come from the environment (optionally via a .env file in the working
directory) and fall back to the defaults below. Thresholds, windows and
batch sizes are operational policy, so none of them are hard-coded in the job.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_THRESHOLD = 0.85
DEFAULT_STALENESS_DAYS = 30
DEFAULT_BATCH_SIZE = 1000
DEFAULT_UPDATE_CHUNK_SIZE = 100
DEFAULT_LOG_EVERY = 100


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    return Path(raw) if raw and raw.strip() else None


@dataclass(frozen=True)
class ReconcileConfig:
    """Settings shared by reconciliation, cleanup and maintenance."""

    threshold: float = DEFAULT_THRESHOLD
    staleness_days: int = DEFAULT_STALENESS_DAYS
    batch_size: int = DEFAULT_BATCH_SIZE
    update_chunk_size: int = DEFAULT_UPDATE_CHUNK_SIZE
    log_every: int = DEFAULT_LOG_EVERY
    workers: int = 1
    load_retries: int = 2
    retry_delay: float = 1.0
    maintenance_interval_days: int = 30
    low_match_rate: float = 5.0
    large_directory_size: int = 1000
    report_dir: Optional[Path] = None
    database_path: Path = Path("data/companies.db")
    directory_path: Path = Path("data/sponsors.json")

    def __post_init__(self):
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {self.threshold}")
        for name in ("staleness_days", "batch_size", "update_chunk_size", "log_every", "workers"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1, got {getattr(self, name)}")
        if self.load_retries < 0:
            raise ValueError(f"load_retries must not be negative, got {self.load_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must not be negative, got {self.retry_delay}")

    @classmethod
    def from_env(cls) -> "ReconcileConfig":
        """Build a config from SPONSOR_* environment variables."""
        load_env()
        return cls(
            threshold=_env_float("SPONSOR_MATCH_THRESHOLD", DEFAULT_THRESHOLD),
            staleness_days=_env_int("SPONSOR_STALENESS_DAYS", DEFAULT_STALENESS_DAYS),
            batch_size=_env_int("SPONSOR_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            update_chunk_size=_env_int("SPONSOR_UPDATE_CHUNK_SIZE", DEFAULT_UPDATE_CHUNK_SIZE),
            log_every=_env_int("SPONSOR_LOG_EVERY", DEFAULT_LOG_EVERY),
            workers=_env_int("SPONSOR_WORKERS", 1),
            report_dir=_env_path("SPONSOR_REPORT_DIR"),
            database_path=_env_path("SPONSOR_DATABASE_PATH") or Path("data/companies.db"),
            directory_path=_env_path("SPONSOR_DIRECTORY_PATH") or Path("data/sponsors.json"),
        )
