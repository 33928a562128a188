"""
Structured logging for sponsor reconciliation runs.

Provides centralized logging with console and file output, plus counters
for monitoring match quality and datastore health across runs.
"""

import json
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring reconciliation runs.
    """

    def __init__(
        self,
        name: str = "sponsormatch",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        # Matching runs in worker threads when parallelized
        self._lock = threading.Lock()
        self.metrics = {
            "store_calls": 0,
            "targets_attempted": 0,
            "targets_matched": 0,
            "targets_failed": 0,
            "errors_by_type": {},
            "mode_match_rate": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"sponsormatch_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_store_call(self):
        """Increment datastore call counter."""
        with self._lock:
            self.metrics["store_calls"] += 1

    def record_target_attempt(self, mode: str):
        """Record that a target was matched under the given run mode."""
        with self._lock:
            self.metrics["targets_attempted"] += 1
            stats = self.metrics["mode_match_rate"].setdefault(
                mode, {"attempts": 0, "matches": 0}
            )
            stats["attempts"] += 1

    def record_target_match(self, mode: str):
        with self._lock:
            self.metrics["targets_matched"] += 1
            if mode in self.metrics["mode_match_rate"]:
                self.metrics["mode_match_rate"][mode]["matches"] += 1

    def record_target_failure(self, error_type: str):
        """Record a per-target failure by exception type."""
        with self._lock:
            self.metrics["targets_failed"] += 1
            errors = self.metrics["errors_by_type"]
            errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a snapshot of the metrics, with per-mode match rates."""
        with self._lock:
            snapshot = {
                key: (dict(value) if isinstance(value, dict) else value)
                for key, value in self.metrics.items()
            }
            snapshot["mode_match_rate"] = {
                mode: dict(stats) for mode, stats in self.metrics["mode_match_rate"].items()
            }

        for stats in snapshot["mode_match_rate"].values():
            if stats["attempts"] > 0:
                stats["match_rate"] = round(stats["matches"] / stats["attempts"], 3)
        return snapshot

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        attempted = metrics["targets_attempted"]
        matched = metrics["targets_matched"]
        overall_rate = round(matched / attempted * 100, 1) if attempted else 0

        self.info("=== Reconciliation Session Metrics ===")
        self.info(f"Store Calls: {metrics['store_calls']}")
        self.info(f"Targets: {matched}/{attempted} matched ({overall_rate}%)")

        if metrics["mode_match_rate"]:
            self.info("Match Rates by Run Mode:")
            for mode, stats in metrics["mode_match_rate"].items():
                rate = stats.get("match_rate", 0) * 100
                self.info(f"  {mode}: {stats['matches']}/{stats['attempts']} ({rate:.1f}%)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "sponsormatch",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
