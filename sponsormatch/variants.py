"""
Alternate spellings of an employer name used for candidate lookup.

Every variant is a plain lowercase string. Variants are never persisted;
they exist only while the lookup index is built and while a name is matched.
"""

from typing import Optional, Set, Tuple

from .normalize import LEGAL_SUFFIXES, STOP_WORDS, normalize_name, strip_punctuation


def acronym(name: str) -> Optional[str]:
    """
    First letters of the significant words of a multi-word name.

    Legal-form words and stop-words are skipped, so
    "International Business Machines Corp" gives "ibm". Returns None for
    single-word names or when fewer than two letters survive.
    """
    words = strip_punctuation(name).split()
    if len(words) < 2:
        return None
    letters = "".join(
        word[0] for word in words
        if word not in LEGAL_SUFFIXES and word not in STOP_WORDS
    )
    return letters if len(letters) >= 2 else None


def ordered_variants(name: str) -> Tuple[str, ...]:
    """
    Variants of a name in a fixed order: raw, normalized, punctuation-free, acronym.

    Duplicates and empty strings are dropped, keeping the first occurrence.
    The matcher walks this order, so it also decides which variant pair is
    reported when scores tie.
    """
    if not isinstance(name, str):
        return ()

    raw = name.strip().lower()
    forms = [raw, normalize_name(name), strip_punctuation(name), acronym(name) or ""]

    seen = []
    for form in forms:
        if form and form not in seen:
            seen.append(form)
    return tuple(seen)


def generate_variants(name: str) -> Set[str]:
    return set(ordered_variants(name))
