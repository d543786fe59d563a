"""
Krippendorff's Alpha for any number of raters, tolerant of missing ratings.

    alpha = 1 - Do / De

Do is the mean distance over all pairs of ratings given to the same unit,
De the same distance applied to every pair drawn from the pooled marginal
category frequencies. Four measurement levels are supported: nominal,
ordinal, interval and ratio.

The ordinal distance is Krippendorff's marginal-sum form: the squared sum of
the marginal frequencies between the two ranks, minus half of each endpoint.
It differs from the simpler `(|rank difference| + 1)^2 - 1` distance, so
ordinal values will not match implementations that use the latter.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..models import InvalidConfigurationError, ProcessingStage
from .table import RatingTable

logger = logging.getLogger(__name__)

LEVELS = ("nominal", "ordinal", "interval", "ratio")


@dataclass
class KrippendorffAlphaResult:
    """Result of a Krippendorff's Alpha computation."""
    alpha: float
    category_count: int
    unit_count: int
    observed_disagreement: float
    expected_disagreement: float
    level: str = "nominal"

    def to_extras(self) -> Dict[str, Any]:
        return {
            "observed_disagreement": self.observed_disagreement,
            "expected_disagreement": self.expected_disagreement,
            "level": self.level
        }


class KrippendorffAlpha:
    """Disagreement-based reliability coefficient."""

    def __init__(self, level: str = "nominal", category_order: Optional[Sequence[str]] = None):
        """
        Args:
            level: Measurement level of the categories
            category_order: Rank order for ordinal data and the numeric fallback
                of interval/ratio data; unlisted categories follow, sorted
        """
        if level not in LEVELS:
            raise InvalidConfigurationError(
                ProcessingStage.AGREEMENT.value,
                f"Unsupported measurement level: {level}",
                level=level,
                supported=list(LEVELS)
            )
        self.level = level
        self.category_order = list(category_order or [])

    def calculate(self, table: RatingTable) -> KrippendorffAlphaResult:
        categories = table.categories()
        frequencies = Counter(value for row in table.ratings for value in row if value is not None)

        if table.unit_count == 0:
            logger.warning("Krippendorff's Alpha computed over zero units; defined as 1")
            return KrippendorffAlphaResult(
                alpha=1.0,
                category_count=len(categories),
                unit_count=0,
                observed_disagreement=0.0,
                expected_disagreement=0.0,
                level=self.level
            )

        distance = self._distance_function(self._ranking(categories), frequencies)
        observed = self._observed_disagreement(table, distance)
        expected = self._expected_disagreement(frequencies, distance)

        alpha = 1.0 if expected == 0 else 1 - observed / expected
        logger.debug(f"Krippendorff's Alpha {alpha:.3f} ({self.level}, Do={observed:.4f}, De={expected:.4f})")

        return KrippendorffAlphaResult(
            alpha=alpha,
            category_count=len(categories),
            unit_count=table.unit_count,
            observed_disagreement=observed,
            expected_disagreement=expected,
            level=self.level
        )

    def _ranking(self, categories: List[str]) -> List[str]:
        ranked = [c for c in self.category_order if c in categories]
        ranked.extend(c for c in categories if c not in ranked)
        return ranked

    def _observed_disagreement(self, table: RatingTable, distance: Callable[[str, str], float]) -> float:
        total = 0.0
        pairs = 0
        for row in table.ratings:
            values = [value for value in row if value is not None]
            for a, b in combinations(values, 2):
                total += distance(a, b)
                pairs += 1
        return total / pairs if pairs else 0.0

    def _expected_disagreement(self, frequencies: Counter, distance: Callable[[str, str], float]) -> float:
        total = sum(frequencies.values())
        if total < 2:
            return 0.0
        pair_count = total * (total - 1) / 2
        expected = 0.0
        for a, b in combinations(sorted(frequencies), 2):
            expected += frequencies[a] * frequencies[b] * distance(a, b) / pair_count
        return expected

    def _distance_function(self, ranking: List[str], frequencies: Counter) -> Callable[[str, str], float]:
        rank = {category: i for i, category in enumerate(ranking)}

        if self.level == "nominal":
            return lambda a, b: 0.0 if a == b else 1.0

        if self.level == "ordinal":
            marginals = [frequencies[category] for category in ranking]

            def ordinal(a: str, b: str) -> float:
                if a == b:
                    return 0.0
                low, high = sorted((rank[a], rank[b]))
                spanned = sum(marginals[low:high + 1]) - (marginals[low] + marginals[high]) / 2
                return float(spanned ** 2)
            return ordinal

        def numeric(category: str) -> float:
            try:
                return float(category)
            except ValueError:
                return float(rank[category])

        return lambda a, b: (numeric(a) - numeric(b)) ** 2
