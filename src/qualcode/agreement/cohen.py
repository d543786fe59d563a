"""
Cohen's Kappa for two raters.

    kappa = (Po - Pe) / (1 - Pe)

Po is the observed agreement (trace of the confusion matrix over N units) and
Pe the agreement expected by chance from the row and column margins. A unit
annotated by only one of the raters is counted against ``__NO_CODE__`` for
the other rater.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..models import NO_CODE
from .table import RatingTable

logger = logging.getLogger(__name__)


@dataclass
class CohensKappaResult:
    """Result of a Cohen's Kappa computation."""
    kappa: float
    observed_agreement: float
    expected_agreement: float
    category_count: int
    unit_count: int
    categories: List[str] = field(default_factory=list)
    confusion_matrix: List[List[int]] = field(default_factory=list)
    weighted: bool = False

    def to_extras(self) -> Dict[str, Any]:
        return {
            "categories": list(self.categories),
            "confusion_matrix": [list(row) for row in self.confusion_matrix],
            "weighted": self.weighted
        }


class CohensKappa:
    """Two-rater chance-corrected agreement with an optional linear weighting."""

    def calculate(self, table: RatingTable, weighted: bool = False,
                  category_order: Optional[Sequence[str]] = None) -> CohensKappaResult:
        """
        Compute Cohen's Kappa over the first two rater columns of a table.

        Args:
            table: Rating table with exactly two raters
            weighted: Apply linear weights over the ordered category indices
            category_order: Rank order for the weighted scale; unlisted
                categories follow, sorted, and ``__NO_CODE__`` comes last

        Returns:
            CohensKappaResult with the confusion matrix used
        """
        categories = self._ranking(table.categories(), category_order)
        index = {category: i for i, category in enumerate(categories)}
        matrix = self._confusion_matrix(table, index)
        n = table.unit_count

        if n == 0:
            logger.warning("Cohen's Kappa computed over zero units; defined as 1")
            return CohensKappaResult(
                kappa=1.0,
                observed_agreement=1.0,
                expected_agreement=1.0,
                category_count=len(categories),
                unit_count=0,
                categories=categories,
                confusion_matrix=matrix.tolist(),
                weighted=weighted
            )

        if weighted:
            observed, expected = self._weighted_agreement(matrix, n)
        else:
            observed, expected = self._unweighted_agreement(matrix, n)

        kappa = 1.0 if math.isclose(expected, 1.0) else (observed - expected) / (1 - expected)
        logger.debug(f"Cohen's Kappa {kappa:.3f} (Po={observed:.3f}, Pe={expected:.3f}, N={n})")

        return CohensKappaResult(
            kappa=float(kappa),
            observed_agreement=float(observed),
            expected_agreement=float(expected),
            category_count=len(categories),
            unit_count=n,
            categories=categories,
            confusion_matrix=matrix.tolist(),
            weighted=weighted
        )

    def _ranking(self, categories: List[str], category_order: Optional[Sequence[str]]) -> List[str]:
        ranked: List[str] = []
        for category in list(category_order or []) + categories:
            if category in categories and category not in ranked:
                ranked.append(category)
        ranked.append(NO_CODE)
        return ranked

    def _confusion_matrix(self, table: RatingTable, index: Dict[str, int]) -> np.ndarray:
        k = len(index)
        matrix = np.zeros((k, k), dtype=int)
        for row in table.ratings:
            code1 = row[0] if row[0] is not None else NO_CODE
            code2 = row[1] if row[1] is not None else NO_CODE
            matrix[index[code1], index[code2]] += 1
        return matrix

    def _unweighted_agreement(self, matrix: np.ndarray, n: int) -> Tuple[float, float]:
        observed = np.trace(matrix) / n
        rows = matrix.sum(axis=1)
        cols = matrix.sum(axis=0)
        expected = float(np.dot(rows, cols)) / (n * n)
        return float(observed), expected

    def _weighted_agreement(self, matrix: np.ndarray, n: int) -> Tuple[float, float]:
        k = matrix.shape[0]
        if k < 2:
            weights = np.ones((k, k))
        else:
            i, j = np.indices((k, k))
            weights = 1 - np.abs(i - j) / (k - 1)

        rows = matrix.sum(axis=1)
        cols = matrix.sum(axis=0)
        observed = float((weights * matrix).sum()) / n
        expected = float((weights * np.outer(rows, cols)).sum()) / (n * n)
        return observed, expected
