"""
Multi-pass consensus resolution.

Several independent coding passes over the same document are pooled. Claims
that overlap in span and carry similar category names are aligned into
groups, and a group becomes a consensus annotation when enough distinct
passes contributed to it. Category proposals are merged by normalized name.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..config import ConsensusConfig
from ..models import (
    Annotation, Category, CodingResult, InvalidConfigurationError, NoPassesProvidedError,
    ProcessingStage
)
from .similarity import names_similar, taxonomy_key

logger = logging.getLogger(__name__)

# Tolerance for fractions such as 2/3 whose product with the pass count is integral
_EPSILON = 1e-9


@dataclass
class CodingPass:
    """Output of one independent coding pass."""
    pass_id: str
    annotations: List[Annotation] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pass_id": self.pass_id,
            "annotations": [a.to_dict() for a in self.annotations],
            "categories": [c.to_dict() for c in self.categories]
        }


@dataclass
class ConsensusGroup:
    """Aligned claims: the seed annotation plus every matching claim."""
    seed: Annotation
    members: List[Annotation]
    pass_ids: List[str]

    @property
    def agreeing_passes(self) -> int:
        return len(self.pass_ids)


@dataclass
class ConsensusResult:
    """Outcome of consensus resolution over a set of passes."""
    annotations: List[Annotation]
    categories: List[Category]
    consensus_rate: float
    pass_count: int
    required_passes: int
    groups: List[ConsensusGroup] = field(default_factory=list)
    pairwise_agreement: Dict[str, float] = field(default_factory=dict)

    @property
    def total_claims(self) -> int:
        return len(self.groups)

    def to_coding_result(self, method: str, duration: float = 0.0) -> CodingResult:
        return CodingResult(
            annotations=list(self.annotations),
            categories=list(self.categories),
            method=method,
            duration=duration,
            consensus_rate=self.consensus_rate,
            extras={
                "pass_count": self.pass_count,
                "required_passes": self.required_passes,
                "pairwise_agreement": dict(self.pairwise_agreement)
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "annotations": [a.to_dict() for a in self.annotations],
            "categories": [c.to_dict() for c in self.categories],
            "consensus_rate": self.consensus_rate,
            "pass_count": self.pass_count,
            "required_passes": self.required_passes,
            "total_claims": self.total_claims,
            "pairwise_agreement": dict(self.pairwise_agreement)
        }


PassInput = Union[CodingPass, Sequence[Annotation]]


def _as_passes(pass_results: Sequence[PassInput]) -> List[CodingPass]:
    passes = []
    for index, item in enumerate(pass_results):
        if isinstance(item, CodingPass):
            passes.append(item)
        else:
            passes.append(CodingPass(pass_id=f"pass-{index + 1}", annotations=list(item)))
    return passes


def required_passes(pass_count: int, fraction: float) -> int:
    """Smallest number of agreeing passes that reaches the fraction."""
    return max(1, math.ceil(fraction * pass_count - _EPSILON))


class ConsensusResolver:
    """Stateless reducer from independent passes to a consensus result."""

    def __init__(self, config: Optional[Union[ConsensusConfig, Dict[str, Any]]] = None):
        if isinstance(config, dict):
            config = ConsensusConfig(**config)
        self.config = config or ConsensusConfig()

    def resolve(self, pass_results: Sequence[PassInput],
                min_agreement_fraction: Optional[float] = None) -> ConsensusResult:
        """
        Resolve independent passes into consensus annotations.

        Args:
            pass_results: One CodingPass, or one list of annotations, per pass
            min_agreement_fraction: Share of passes that must agree; defaults
                to the configured value (2/3)

        Returns:
            ConsensusResult

        Raises:
            NoPassesProvidedError: If no pass is given
            InvalidConfigurationError: If the fraction is outside (0, 1]
        """
        if not pass_results:
            raise NoPassesProvidedError()

        fraction = (self.config.min_agreement_fraction
                    if min_agreement_fraction is None else min_agreement_fraction)
        if not 0.0 < fraction <= 1.0:
            raise InvalidConfigurationError(
                ProcessingStage.CONSENSUS.value,
                f"min_agreement_fraction must lie in (0, 1], got {fraction}",
                min_agreement_fraction=fraction
            )

        passes = _as_passes(pass_results)
        total = len(passes)
        needed = required_passes(total, fraction)

        groups = self._align(passes)
        annotations = [
            replace(group.seed, confidence=group.agreeing_passes / total)
            for group in groups
            if group.agreeing_passes >= needed
        ]
        rate = len(annotations) / len(groups) if groups else 0.0

        logger.debug(f"Consensus: {len(annotations)}/{len(groups)} claim groups reached "
                     f"{needed}/{total} passes")

        return ConsensusResult(
            annotations=annotations,
            categories=self.merge_categories(passes),
            consensus_rate=rate,
            pass_count=total,
            required_passes=needed,
            groups=groups,
            pairwise_agreement=self.pairwise_agreement(passes)
        )

    def same_claim(self, a: Annotation, b: Annotation) -> bool:
        """Overlapping spans carrying similar category names."""
        return a.overlaps(b) and names_similar(
            a.category_name, b.category_name, self.config.name_overlap_threshold
        )

    def merge_categories(self, passes: Sequence[CodingPass]) -> List[Category]:
        """Deduplicate proposed categories by normalized name; first seen wins."""
        merged: Dict[str, Category] = {}
        for coding_pass in passes:
            for category in coding_pass.categories:
                merged.setdefault(taxonomy_key(category.name), category)
        return list(merged.values())

    def pairwise_agreement(self, passes: Sequence[CodingPass]) -> Dict[str, float]:
        """Matched claims over the larger claim count, for every pass pair."""
        result = {}
        for first, second in combinations(passes, 2):
            key = f"{first.pass_id}-{second.pass_id}"
            result[key] = self._pass_agreement(first.annotations, second.annotations)
        return result

    def _pass_agreement(self, first: Sequence[Annotation], second: Sequence[Annotation]) -> float:
        if not first and not second:
            return 1.0
        if not first or not second:
            return 0.0

        matched = set()
        agreements = 0
        for a in first:
            for index, b in enumerate(second):
                if index in matched:
                    continue
                if self.same_claim(a, b):
                    agreements += 1
                    matched.add(index)
                    break
        return agreements / max(len(first), len(second))

    def _align(self, passes: Sequence[CodingPass]) -> List[ConsensusGroup]:
        claims: List[Tuple[int, Annotation]] = [
            (index, annotation)
            for index, coding_pass in enumerate(passes)
            for annotation in coding_pass.annotations
        ]
        assigned = [False] * len(claims)
        groups = []

        for i, (pass_index, seed) in enumerate(claims):
            if assigned[i]:
                continue
            assigned[i] = True
            members = [seed]
            contributing = [pass_index]
            for j in range(i + 1, len(claims)):
                other_index, other = claims[j]
                if assigned[j] or not self.same_claim(seed, other):
                    continue
                assigned[j] = True
                members.append(other)
                if other_index not in contributing:
                    contributing.append(other_index)
            groups.append(ConsensusGroup(
                seed=seed,
                members=members,
                pass_ids=[passes[index].pass_id for index in contributing]
            ))

        return groups


def resolve_consensus(pass_results: Sequence[PassInput],
                      min_agreement_fraction: float = 2 / 3) -> ConsensusResult:
    """
    Convenience function to resolve consensus over independent passes.

    Args:
        pass_results: One CodingPass, or one list of annotations, per pass
        min_agreement_fraction: Share of passes that must agree

    Returns:
        ConsensusResult
    """
    return ConsensusResolver().resolve(pass_results, min_agreement_fraction)
