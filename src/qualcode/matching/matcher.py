"""
Pattern similarity matching - calibrated coding against existing categories.

Each category's name and description are reduced to a keyword pattern. The
document is segmented into sentences and every segment is scored against
every pattern by TF-IDF cosine similarity. The best candidate above the
confidence threshold becomes a proposed annotation.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config import MatcherConfig
from ..models import (
    Annotation, Category, CodingResult, Document, InvalidConfigurationError, ProcessingStage
)
from .keywords import build_stopwords, extract_keywords
from .segment import Segment, segment_document
from .tfidf import TermVector, cosine_similarity, document_frequencies, tfidf_vector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pattern:
    """Keyword profile derived from a category's name and description."""
    category: Category
    keywords: tuple

    @property
    def category_id(self) -> str:
        return self.category.id


@dataclass(frozen=True)
class CategoryCandidate:
    """A category ranked against a segment."""
    category: Category
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category_id": self.category.id,
            "category_name": self.category.name,
            "similarity": self.similarity
        }


@dataclass
class SegmentMatch:
    """Ranked candidates for one segment plus the proposed annotation, if any."""
    segment: Segment
    candidates: List[CategoryCandidate] = field(default_factory=list)
    annotation: Optional[Annotation] = None

    @property
    def matched(self) -> bool:
        return self.annotation is not None

    @property
    def best(self) -> Optional[CategoryCandidate]:
        return self.candidates[0] if self.candidates else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.segment.text,
            "start_offset": self.segment.start_offset,
            "end_offset": self.segment.end_offset,
            "candidates": [c.to_dict() for c in self.candidates],
            "annotation": self.annotation.to_dict() if self.annotation else None
        }


class CategoryProposer(ABC):
    """External capability that may suggest a new category for an unmatched segment."""

    @abstractmethod
    def propose_category(self, segment: Segment) -> Optional[Category]:
        """Return a new category for the segment, or None."""


def as_document(document: Union[Document, Dict[str, Any]]) -> Document:
    if isinstance(document, Document):
        return document
    return Document(id=document["id"], content=document.get("content", ""), name=document.get("name"))


class PatternMatcher:
    """Scores document segments against category keyword patterns."""

    def __init__(self, config: Optional[Union[MatcherConfig, Dict[str, Any]]] = None,
                 proposer: Optional[CategoryProposer] = None):
        """
        Initialize the pattern matcher.

        Args:
            config: Matcher configuration, as a model or a plain dict
            proposer: Optional capability consulted for unmatched segments
        """
        if isinstance(config, dict):
            config = MatcherConfig(**config)
        self.config = config or MatcherConfig()
        self.proposer = proposer
        self._stopwords = build_stopwords(self.config.extra_stopwords)

    def keywords(self, text: str) -> List[str]:
        return extract_keywords(text, self._stopwords, self.config.min_keyword_length)

    def build_patterns(self, categories: Sequence[Category]) -> List[Pattern]:
        """Derive a keyword pattern for every category."""
        return [
            Pattern(category=category,
                    keywords=tuple(self.keywords(f"{category.name} {category.description or ''}")))
            for category in categories
        ]

    def segment(self, content: str) -> List[Segment]:
        """Segment content and attach keywords to every segment."""
        return [
            replace(segment, keywords=tuple(self.keywords(segment.text)))
            for segment in segment_document(content, self.config.min_segment_length)
        ]

    def match(self, document: Union[Document, Dict[str, Any]], categories: Sequence[Category],
              min_confidence: Optional[float] = None) -> List[SegmentMatch]:
        """
        Rank categories for every segment of a document.

        Args:
            document: Document (or ``{"id", "content"}`` dict) to code
            categories: Existing categories; not modified
            min_confidence: Similarity the best candidate needs to become an
                annotation; defaults to the configured value

        Returns:
            One SegmentMatch per segment, in document order
        """
        document = as_document(document)
        threshold = self.config.min_confidence if min_confidence is None else min_confidence
        if not 0.0 <= threshold <= 1.0:
            raise InvalidConfigurationError(
                ProcessingStage.MATCHING.value,
                f"min_confidence must lie in [0, 1], got {threshold}",
                min_confidence=threshold
            )

        segments = self.segment(document.content)
        if not segments:
            return []

        patterns = self.build_patterns(categories)
        df = document_frequencies(segment.keywords for segment in segments)
        total = len(segments)
        pattern_vectors = [(pattern, tfidf_vector(pattern.keywords, df, total)) for pattern in patterns]

        results = []
        for segment in segments:
            vector = tfidf_vector(segment.keywords, df, total)
            candidates = self._rank(vector, pattern_vectors)
            annotation = None
            if candidates and candidates[0].similarity >= threshold:
                annotation = self._annotate(document, segment, candidates[0])
            results.append(SegmentMatch(segment=segment, candidates=candidates, annotation=annotation))

        matched = sum(1 for r in results if r.matched)
        logger.debug(f"Matched {matched}/{total} segments of document {document.id} "
                     f"against {len(patterns)} patterns")
        return results

    def code(self, document: Union[Document, Dict[str, Any]], categories: Sequence[Category],
             min_confidence: Optional[float] = None) -> CodingResult:
        """
        Produce a coding result from pattern matches.

        Unmatched segments are offered to the category proposer, when one is
        configured; proposed categories are appended to the result together
        with an annotation of the segment.
        """
        started = time.perf_counter()
        document = as_document(document)
        matches = self.match(document, categories, min_confidence)

        annotations = [m.annotation for m in matches if m.annotation is not None]
        result_categories = list(categories)
        unmatched = [m.segment for m in matches if not m.matched]

        if self.proposer is not None:
            for segment in unmatched:
                proposed = self.proposer.propose_category(segment)
                if proposed is None:
                    continue
                result_categories.append(proposed)
                annotations.append(Annotation(
                    document_id=document.id,
                    category_id=proposed.id,
                    category_name=proposed.name,
                    start_offset=segment.start_offset,
                    end_offset=segment.end_offset,
                    text=segment.text,
                    coded_by=self.config.method_name,
                    id=f"{document.id}-{segment.start_offset}-{segment.end_offset}-{proposed.id}"
                ))

        return CodingResult(
            annotations=annotations,
            categories=result_categories,
            method=self.config.method_name,
            duration=time.perf_counter() - started,
            consensus_rate=len(annotations) / max(len(matches), 1),
            extras={"segment_count": len(matches), "unmatched_count": len(unmatched)}
        )

    def _rank(self, vector: TermVector, pattern_vectors) -> List[CategoryCandidate]:
        candidates = []
        for pattern, pattern_vector in pattern_vectors:
            similarity = cosine_similarity(vector, pattern_vector)
            if similarity > 0 and similarity >= self.config.similarity_floor:
                candidates.append(CategoryCandidate(category=pattern.category, similarity=similarity))
        candidates.sort(key=lambda c: c.similarity, reverse=True)
        return candidates[:self.config.max_candidates]

    def _annotate(self, document: Document, segment: Segment, candidate: CategoryCandidate) -> Annotation:
        return Annotation(
            document_id=document.id,
            category_id=candidate.category.id,
            category_name=candidate.category.name,
            start_offset=segment.start_offset,
            end_offset=segment.end_offset,
            text=segment.text,
            coded_by=self.config.method_name,
            confidence=min(1.0, candidate.similarity),
            id=f"{document.id}-{segment.start_offset}-{segment.end_offset}-{candidate.category.id}"
        )


def match_patterns(document: Union[Document, Dict[str, Any]], categories: Sequence[Category],
                   min_confidence: Optional[float] = None,
                   config: Optional[Union[MatcherConfig, Dict[str, Any]]] = None) -> List[SegmentMatch]:
    """
    Convenience function to match a document against existing categories.

    Args:
        document: Document or ``{"id", "content"}`` dict
        categories: Existing category definitions
        min_confidence: Threshold for turning the best candidate into an
            annotation; the configured value (0.3 by default) when omitted
        config: Optional matcher configuration

    Returns:
        List of SegmentMatch objects (empty for empty input)
    """
    return PatternMatcher(config).match(document, categories, min_confidence)
