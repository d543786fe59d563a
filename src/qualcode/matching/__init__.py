"""
Pattern similarity matching modules.

This package segments documents, extracts keyword profiles and proposes
category assignments by TF-IDF cosine similarity.
"""

from .keywords import STOPWORDS, build_stopwords, extract_keywords
from .matcher import (
    CategoryCandidate, CategoryProposer, Pattern, PatternMatcher, SegmentMatch, match_patterns
)
from .segment import Segment, segment_document
from .tfidf import TermVector, cosine_similarity, document_frequencies, tfidf_vector

__all__ = [
    'STOPWORDS',
    'build_stopwords',
    'extract_keywords',
    'CategoryCandidate',
    'CategoryProposer',
    'Pattern',
    'PatternMatcher',
    'SegmentMatch',
    'match_patterns',
    'Segment',
    'segment_document',
    'TermVector',
    'cosine_similarity',
    'document_frequencies',
    'tfidf_vector',
]
