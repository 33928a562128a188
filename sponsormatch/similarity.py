"""
Name similarity scoring.

Two signals are combined: character edit distance, which tolerates typos
and small spelling differences, and word-set overlap, which tolerates
reordering and partial names ("Acme Corp of Texas" vs "Acme Corporation").
Overlap is discounted by OVERLAP_WEIGHT so it can never produce a perfect score.
"""

from rapidfuzz.distance import Levenshtein

from .normalize import normalize_name

OVERLAP_WEIGHT = 0.8


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance (unit cost insert/delete/substitute)."""
    return Levenshtein.distance(a, b)


def token_overlap(a: str, b: str) -> float:
    """Jaccard overlap of the words longer than one character."""
    words_a = {w for w in a.split() if len(w) > 1}
    words_b = {w for w in b.split() if len(w) > 1}
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def score(a: str, b: str) -> float:
    """
    Similarity of two names in [0, 1].

    Both names are normalized first; identical normalized forms score
    exactly 1.0. Empty input (or input that normalizes to nothing) scores 0.0.
    The result is symmetric in its arguments.
    """
    if not a or not b:
        return 0.0

    norm_a = normalize_name(a)
    norm_b = normalize_name(b)
    if not norm_a or not norm_b:
        return 0.0
    if norm_a == norm_b:
        return 1.0

    longest = max(len(norm_a), len(norm_b))
    length_similarity = 1 - edit_distance(norm_a, norm_b) / longest

    return max(length_similarity, token_overlap(norm_a, norm_b) * OVERLAP_WEIGHT)
