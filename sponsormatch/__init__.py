"""Employer-to-sponsor name matching and flag reconciliation."""

__version__ = "0.1.0"

from .errors import DatastoreConnectionError, FatalRunError, ReconciliationError
from .index import LookupIndex
from .matcher import MatchResult, Matcher, find_best_match, full_scan_match
from .models import SponsorRecord, TargetRecord
from .normalize import normalize_name
from .reconcile import ReconciliationJob, RunMode, RunState
from .similarity import score
from .variants import generate_variants

__all__ = [
    "DatastoreConnectionError",
    "FatalRunError",
    "LookupIndex",
    "MatchResult",
    "Matcher",
    "ReconciliationError",
    "ReconciliationJob",
    "RunMode",
    "RunState",
    "SponsorRecord",
    "TargetRecord",
    "find_best_match",
    "full_scan_match",
    "generate_variants",
    "normalize_name",
    "score",
]
