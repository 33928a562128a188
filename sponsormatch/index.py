"""
Inverted lookup from name variant to the sponsors that produce it.

Matching every target against every sponsor is O(targets x sponsors). The
index narrows each target to the sponsors that share at least one exact
variant string with it, and only those are scored in detail.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

from .logger import get_logger
from .models import SponsorRecord
from .variants import ordered_variants

logger = get_logger()


class LookupIndex:
    """
    Read-only variant -> sponsors mapping, built once per run.

    Entries keep insertion order and may list a sponsor more than once;
    query() de-duplicates by sponsor id.
    """

    def __init__(self, entries: Mapping[str, Tuple[SponsorRecord, ...]], sponsor_count: int = 0):
        self._entries = MappingProxyType(dict(entries))
        self.sponsor_count = sponsor_count

    @classmethod
    def build(cls, sponsors: Iterable[SponsorRecord]) -> "LookupIndex":
        """Index every sponsor under each variant of its canonical name."""
        entries: Dict[str, List[SponsorRecord]] = {}
        count = 0
        for sponsor in sponsors:
            count += 1
            for variant in ordered_variants(sponsor.name):
                entries.setdefault(variant, []).append(sponsor)

        logger.info(
            f"Built lookup index with {len(entries)} name variations",
            sponsors=count,
            variants=len(entries),
        )
        return cls({k: tuple(v) for k, v in entries.items()}, sponsor_count=count)

    def query(self, name: str) -> List[SponsorRecord]:
        """Sponsors sharing at least one variant with name, first-seen order, no repeats."""
        seen = set()
        candidates: List[SponsorRecord] = []
        for variant in ordered_variants(name):
            for sponsor in self._entries.get(variant, ()):
                if sponsor.id not in seen:
                    seen.add(sponsor.id)
                    candidates.append(sponsor)
        return candidates

    def entries(self, variant: str) -> Tuple[SponsorRecord, ...]:
        return self._entries.get(variant, ())

    def __contains__(self, variant: object) -> bool:
        return variant in self._entries

    def __len__(self) -> int:
        return len(self._entries)
