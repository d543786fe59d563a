"""
Pure TF-IDF weighting and cosine similarity over immutable term vectors.

Document frequencies are computed over the segments of a single document,
not a corpus: ``idf = ln(total_segments / df)``.
"""

import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Sequence, Tuple


@dataclass(frozen=True)
class TermVector:
    """Sorted, immutable mapping from term to weight."""
    entries: Tuple[Tuple[str, float], ...] = ()

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> 'TermVector':
        return cls(tuple(sorted(weights.items())))

    def as_dict(self) -> Dict[str, float]:
        return dict(self.entries)

    @property
    def terms(self) -> Tuple[str, ...]:
        return tuple(term for term, _ in self.entries)

    @property
    def norm(self) -> float:
        return math.sqrt(sum(weight * weight for _, weight in self.entries))

    def __len__(self) -> int:
        return len(self.entries)


def document_frequencies(keyword_lists: Iterable[Sequence[str]]) -> Dict[str, int]:
    """Number of segments each term occurs in."""
    frequencies: Counter = Counter()
    for keywords in keyword_lists:
        frequencies.update(set(keywords))
    return dict(frequencies)


def tfidf_vector(keywords: Sequence[str], df: Mapping[str, int], total_segments: int) -> TermVector:
    """
    Weight a keyword list by term frequency and inverse document frequency.

    Terms missing from ``df`` count as occurring in one segment.

    Args:
        keywords: Keyword tokens, repeats included
        df: Document frequency per term
        total_segments: Size of the segment population

    Returns:
        TermVector of TF-IDF weights
    """
    if not keywords or total_segments <= 0:
        return TermVector()

    counts = Counter(keywords)
    size = len(keywords)
    weights = {}
    for term, count in counts.items():
        idf = math.log(total_segments / df.get(term, 1))
        weights[term] = (count / size) * idf
    return TermVector.from_mapping(weights)


def cosine_similarity(a: TermVector, b: TermVector) -> float:
    """Normalized dot product of two term vectors; 0 when either is null."""
    norm_a = a.norm
    norm_b = b.norm
    if norm_a == 0 or norm_b == 0:
        return 0.0
    other = b.as_dict()
    dot = sum(weight * other.get(term, 0.0) for term, weight in a.entries)
    return dot / (norm_a * norm_b)
