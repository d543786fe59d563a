"""
Percent agreement, the naive baseline that does not correct for chance.
"""

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, Any

from .table import RatingTable

logger = logging.getLogger(__name__)


@dataclass
class PercentAgreementResult:
    """Result of a percent agreement computation."""
    agreement: float
    category_count: int
    unit_count: int
    compared_units: int
    category_agreement: Dict[str, float] = field(default_factory=dict)
    pairwise_agreement: Dict[str, float] = field(default_factory=dict)

    def to_extras(self) -> Dict[str, Any]:
        return {
            "compared_units": self.compared_units,
            "category_agreement": dict(self.category_agreement),
            "pairwise_agreement": dict(self.pairwise_agreement)
        }


class PercentAgreement:
    """
    Share of units on which every rater who rated the unit chose the same category.

    Units rated by a single rater are left out of the denominator. With no
    comparable unit at all the agreement is defined as 1.
    """

    def calculate(self, table: RatingTable) -> PercentAgreementResult:
        categories = table.categories()
        agreements = 0
        compared = 0

        for row in table.ratings:
            values = [value for value in row if value is not None]
            if len(values) < 2:
                continue
            compared += 1
            if len(set(values)) == 1:
                agreements += 1

        agreement = agreements / compared if compared else 1.0
        logger.debug(f"Percent agreement {agreement:.3f} over {compared} compared units")

        return PercentAgreementResult(
            agreement=agreement,
            category_count=len(categories),
            unit_count=table.unit_count,
            compared_units=compared,
            category_agreement=self._category_agreement(table, categories),
            pairwise_agreement=self._pairwise_agreement(table)
        )

    def _category_agreement(self, table: RatingTable, categories) -> Dict[str, float]:
        """Per category: units carrying it where every rating is that category."""
        result = {}
        for category in categories:
            agreements = 0
            total = 0
            for row in table.ratings:
                values = [value for value in row if value is not None]
                hits = sum(1 for value in values if value == category)
                if hits == 0:
                    continue
                total += 1
                if hits == len(values) and len(values) > 1:
                    agreements += 1
            result[category] = agreements / total if total else 0.0
        return result

    def _pairwise_agreement(self, table: RatingTable) -> Dict[str, float]:
        """Agreement for every rater pair over the units both of them rated."""
        result = {}
        for i, j in combinations(range(table.rater_count), 2):
            agreements = 0
            comparisons = 0
            for row in table.ratings:
                if row[i] is None or row[j] is None:
                    continue
                comparisons += 1
                if row[i] == row[j]:
                    agreements += 1
            key = f"{table.rater_ids[i]}-{table.rater_ids[j]}"
            result[key] = agreements / comparisons if comparisons else 0.0
        return result
