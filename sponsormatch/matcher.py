"""
Best-match selection for one target name.

Every (target variant, candidate variant) pair is scored. A pair replaces the
current best only when its score is strictly higher and clears the threshold,
so on ties the first pair seen wins: candidates in the order given, then
target variants, then candidate variants, each in ordered_variants() order.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .config import DEFAULT_THRESHOLD
from .index import LookupIndex
from .models import SponsorRecord
from .similarity import score
from .variants import ordered_variants


@dataclass(frozen=True)
class MatchResult:
    """Winning sponsor for a target, with the variant pair that produced the score."""

    sponsor: SponsorRecord
    score: float
    target_variant: str
    sponsor_variant: str

    @property
    def similarity_percent(self) -> str:
        return f"{self.score * 100:.1f}%"

    def __repr__(self) -> str:
        return f"<MatchResult({self.sponsor.name!r}, score={self.score:.3f})>"


def find_best_match(
    target_name: str,
    candidates: Iterable[SponsorRecord],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[MatchResult]:
    """
    Score target_name against every candidate and keep the best pair.

    Args:
        target_name: Raw employer name from the target store
        candidates: Sponsors to compare against, usually an index shortlist
        threshold: Minimum accepted score; a score equal to it is accepted

    Returns:
        MatchResult for the best pair, or None if nothing reaches threshold
    """
    target_variants = ordered_variants(target_name)
    if not target_variants:
        return None

    best: Optional[MatchResult] = None
    # Below every possible score, so a threshold of 0.0 admits a 0.0 pair
    best_score = -1.0

    for candidate in candidates:
        candidate_variants = ordered_variants(candidate.name)
        for target_variant in target_variants:
            for candidate_variant in candidate_variants:
                pair_score = score(target_variant, candidate_variant)
                if pair_score > best_score and pair_score >= threshold:
                    best_score = pair_score
                    best = MatchResult(
                        sponsor=candidate,
                        score=pair_score,
                        target_variant=target_variant,
                        sponsor_variant=candidate_variant,
                    )

    return best


def full_scan_match(
    target_name: str,
    sponsors: Iterable[SponsorRecord],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[MatchResult]:
    """Brute-force fallback: score against every sponsor, no index shortlist."""
    return find_best_match(target_name, sponsors, threshold)


class Matcher:
    """A built lookup index plus the threshold used to accept a match."""

    def __init__(self, index: LookupIndex, threshold: float = DEFAULT_THRESHOLD):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        self.index = index
        self.threshold = threshold

    def candidates(self, target_name: str):
        return self.index.query(target_name)

    def match(self, target_name: str) -> Optional[MatchResult]:
        candidates = self.candidates(target_name)
        if not candidates:
            return None
        return find_best_match(target_name, candidates, self.threshold)
