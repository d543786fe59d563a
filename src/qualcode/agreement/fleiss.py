"""
Fleiss' Kappa for any number of raters.

    kappa = (P_bar - Pe_bar) / (1 - Pe_bar)

The N x k count matrix holds, per unit and category, how many of the n
raters assigned that unit to that category.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from .table import RatingTable

logger = logging.getLogger(__name__)


@dataclass
class FleissKappaResult:
    """Result of a Fleiss' Kappa computation."""
    kappa: float
    observed_agreement: float
    expected_agreement: float
    category_count: int
    unit_count: int
    category_kappas: Dict[str, float] = field(default_factory=dict)

    def to_extras(self) -> Dict[str, Any]:
        return {"category_kappas": dict(self.category_kappas)}


class FleissKappa:
    """Multi-rater chance-corrected agreement with per-category decomposition."""

    def calculate(self, table: RatingTable) -> FleissKappaResult:
        n = table.rater_count
        categories = table.categories()
        big_n = table.unit_count
        k = len(categories)

        if big_n == 0 or n < 2:
            logger.warning("Fleiss' Kappa computed without comparable ratings; defined as 1")
            return FleissKappaResult(
                kappa=1.0,
                observed_agreement=1.0,
                expected_agreement=1.0,
                category_count=k,
                unit_count=big_n
            )

        counts = self._count_matrix(table, categories)

        # Per-unit agreement P_i and its mean
        p_i = (counts * (counts - 1)).sum(axis=1) / (n * (n - 1))
        p_bar = float(p_i.mean())

        # Category proportions and chance agreement
        p_j = counts.sum(axis=0) / (big_n * n)
        pe_bar = float((p_j ** 2).sum())

        kappa = 1.0 if math.isclose(pe_bar, 1.0) else (p_bar - pe_bar) / (1 - pe_bar)
        logger.debug(f"Fleiss' Kappa {kappa:.3f} (P={p_bar:.3f}, Pe={pe_bar:.3f}, N={big_n}, n={n})")

        return FleissKappaResult(
            kappa=float(kappa),
            observed_agreement=p_bar,
            expected_agreement=pe_bar,
            category_count=k,
            unit_count=big_n,
            category_kappas=self._category_kappas(counts, categories, p_j, n)
        )

    def _count_matrix(self, table: RatingTable, categories) -> np.ndarray:
        index = {category: j for j, category in enumerate(categories)}
        counts = np.zeros((table.unit_count, len(categories)), dtype=float)
        for i, row in enumerate(table.ratings):
            for value in row:
                if value is not None:
                    counts[i, index[value]] += 1
        return counts

    def _category_kappas(self, counts: np.ndarray, categories, p_j: np.ndarray, n: int) -> Dict[str, float]:
        big_n = counts.shape[0]
        result = {}
        for j, category in enumerate(categories):
            p = float(p_j[j])
            if p <= 0.0 or p >= 1.0:
                # Degenerate proportion; the decomposition would divide by zero
                result[category] = 1.0
                continue
            q = 1 - p
            disagreement = float((counts[:, j] * (n - counts[:, j])).sum())
            result[category] = 1 - disagreement / (big_n * n * (n - 1) * p * q)
        return result
