import re
from types import MappingProxyType
from typing import List

# Legal-form words. A subset of COMPANY_SUFFIXES that never carries meaning in an acronym.
LEGAL_SUFFIXES = frozenset({
    "inc", "incorporated", "corp", "corporation", "company", "co",
    "llc", "ltd", "limited", "lp", "partnership", "pllc", "pa",
})

COMPANY_SUFFIXES = LEGAL_SUFFIXES | frozenset({
    "group", "holdings", "enterprises", "systems", "solutions",
    "services", "technologies", "tech", "international", "intl",
    "global", "worldwide", "ventures", "capital", "partners",
    "associates", "consulting", "communications", "industries",
    "manufacturing", "development", "research", "institute",
    "foundation", "organization", "org", "agency", "bureau",
})

ABBREVIATIONS = MappingProxyType({
    "tech": "technology",
    "mfg": "manufacturing",
    "mgmt": "management",
    "dev": "development",
    "sys": "systems",
    "sol": "solutions",
    "svc": "services",
    "svcs": "services",
    "grp": "group",
    "corp": "corporation",
    "inc": "incorporated",
    "intl": "international",
    "natl": "national",
    "assoc": "associates",
    "comm": "communications",
    "cons": "consulting",
    "res": "research",
    "inst": "institute",
})

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "of", "in", "on", "at", "to",
    "for", "with", "by", "from", "up", "about", "into", "through",
    "during", "before", "after", "above", "below", "between",
})

_NON_WORD = re.compile(r"[^\w\s]|_")


def normalize_text(s: str) -> str:
    return " ".join(s.strip().lower().split())


def strip_punctuation(name: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    if not isinstance(name, str):
        return ""
    return " ".join(_NON_WORD.sub(" ", name.lower()).split())


def remove_suffixes(words: List[str]) -> List[str]:
    # Trailing suffixes only, and never the last remaining word
    words = list(words)
    while len(words) > 1 and words[-1] in COMPANY_SUFFIXES:
        words.pop()
    return words


def expand_abbreviations(words: List[str]) -> List[str]:
    return [ABBREVIATIONS.get(word, word) for word in words]


def remove_stop_words(words: List[str]) -> List[str]:
    meaningful = [word for word in words if word not in STOP_WORDS]
    return meaningful if meaningful else list(words)


def normalize_name(name: str) -> str:
    """
    Reduce an employer name to the canonical form used for matching.

    "ACME Corp." and "Acme Corporation" both become "acme". Returns an
    empty string for empty or non-string input; never raises.

    Expansion can surface a new trailing suffix ("foo corp the" becomes
    "foo corporation"), so the word pipeline is applied until it settles.
    That keeps normalize_name(normalize_name(x)) == normalize_name(x).
    """
    words = strip_punctuation(name).split()
    if not words:
        return ""

    while True:
        reduced = remove_stop_words(expand_abbreviations(remove_suffixes(words)))
        if reduced == words:
            break
        words = reduced

    return " ".join(words)
