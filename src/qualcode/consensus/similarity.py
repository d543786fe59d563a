"""
Category name comparison used to align claims from independent passes.
"""

import re

_PUNCTUATION = re.compile(r'[^\w\s]')


def normalize_name(name: str) -> str:
    """Lowercase and trim a category name."""
    return (name or "").lower().strip()


def taxonomy_key(name: str) -> str:
    """Deduplication key for category proposals: normalized, punctuation stripped."""
    return _PUNCTUATION.sub('', normalize_name(name)).strip()


def token_overlap(a: str, b: str) -> float:
    """Jaccard overlap of the word sets of two names."""
    words_a = set(normalize_name(a).split())
    words_b = set(normalize_name(b).split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def names_similar(a: str, b: str, overlap_threshold: float = 0.5) -> bool:
    """
    Decide whether two category names denote the same code.

    Names match when they are equal after normalization, when one contains
    the other, or when their word sets overlap by at least the threshold.
    """
    first = normalize_name(a)
    second = normalize_name(b)
    if first == second:
        return True
    if not first or not second:
        return False
    if first in second or second in first:
        return True
    return token_overlap(first, second) >= overlap_threshold
