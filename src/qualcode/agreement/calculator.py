"""
Inter-rater reliability entry point.

Dispatches a set of rater records to one of four interchangeable metrics and
wraps the outcome in an AgreementResult:

- percent-agreement: naive baseline, any number of raters
- cohens-kappa: exactly two raters
- fleiss-kappa: two or more raters
- krippendorff-alpha: two or more raters, tolerates missing ratings
"""

import logging
import math
import random
from enum import Enum
from itertools import combinations
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..config import AgreementConfig
from ..models import (
    AgreementDetails, AgreementResult, ConfidenceInterval, IncompatibleRaterCountError,
    InsufficientRatersError, InvalidConfigurationError, ProcessingStage, RaterRecord,
    UnsupportedMetricError
)
from .cohen import CohensKappa
from .fleiss import FleissKappa
from .interpretation import interpret
from .krippendorff import KrippendorffAlpha
from .percent import PercentAgreement
from .table import RatingTable

logger = logging.getLogger(__name__)


class AgreementMetric(Enum):
    """Supported agreement metric identifiers."""
    PERCENT_AGREEMENT = "percent-agreement"
    COHENS_KAPPA = "cohens-kappa"
    FLEISS_KAPPA = "fleiss-kappa"
    KRIPPENDORFF_ALPHA = "krippendorff-alpha"


def recommend_metric(rater_count: int) -> AgreementMetric:
    """Cohen's Kappa for two raters, Fleiss' Kappa otherwise."""
    if rater_count == 2:
        return AgreementMetric.COHENS_KAPPA
    return AgreementMetric.FLEISS_KAPPA


def _parse_metric(metric: Union[str, AgreementMetric]) -> AgreementMetric:
    if isinstance(metric, AgreementMetric):
        return metric
    try:
        return AgreementMetric(metric)
    except ValueError:
        raise UnsupportedMetricError(metric, [m.value for m in AgreementMetric])


def _agreement_config(options: Dict[str, Any]) -> AgreementConfig:
    """Validate agreement options, reporting rejected values as typed errors."""
    try:
        return AgreementConfig(**options)
    except ValidationError as e:
        error = e.errors()[0]
        option = error["loc"][0] if error["loc"] else None
        if option == "metric":
            raise UnsupportedMetricError(error.get("input"), [m.value for m in AgreementMetric]) from e
        raise InvalidConfigurationError(
            ProcessingStage.AGREEMENT.value,
            f"Invalid agreement option {option}: {error['msg']}",
            option=str(option),
            value=error.get("input")
        ) from e


class AgreementCalculator:
    """Computes agreement results according to an AgreementConfig."""

    def __init__(self, config: Optional[Union[AgreementConfig, Dict[str, Any]]] = None):
        if isinstance(config, dict):
            config = _agreement_config(config)
        self.config = config or AgreementConfig()

    def calculate(self, rater_records: Sequence[RaterRecord],
                  metric: Optional[Union[str, AgreementMetric]] = None) -> AgreementResult:
        """
        Compute inter-rater agreement.

        Args:
            rater_records: One record per rater
            metric: Metric identifier; overrides the configured metric. When
                neither is set the metric is chosen by rater count.

        Returns:
            AgreementResult with value, interpretation and diagnostics

        Raises:
            InsufficientRatersError: Fewer than two records
            UnsupportedMetricError: Unknown metric identifier
            IncompatibleRaterCountError: Cohen's Kappa with other than two records
        """
        if len(rater_records) < 2:
            raise InsufficientRatersError(len(rater_records))

        requested = metric if metric is not None else self.config.metric
        chosen = _parse_metric(requested) if requested is not None else recommend_metric(len(rater_records))

        if chosen is AgreementMetric.COHENS_KAPPA and len(rater_records) != 2:
            raise IncompatibleRaterCountError(chosen.value, len(rater_records))

        table = RatingTable.from_records(rater_records)
        compute = self._metric_function(chosen)
        value, details, extras = compute(table)

        interval = None
        if self.config.bootstrap_samples > 0:
            interval = self._bootstrap(table, compute)

        logger.debug(f"{chosen.value} = {value:.3f} over {details.unit_count} units, "
                     f"{details.rater_count} raters")

        return AgreementResult(
            metric=chosen.value,
            value=value,
            interpretation=interpret(value),
            details=details,
            extras=extras,
            confidence_interval=interval
        )

    def pairwise(self, rater_records: Sequence[RaterRecord],
                 metric: Union[str, AgreementMetric] = AgreementMetric.COHENS_KAPPA) -> Dict[Tuple[str, str], float]:
        """Agreement value for every pair of raters."""
        if len(rater_records) < 2:
            raise InsufficientRatersError(len(rater_records))
        chosen = _parse_metric(metric)
        table = RatingTable.from_records(rater_records)
        compute = self._metric_function(chosen)

        result = {}
        for i, j in combinations(range(len(rater_records)), 2):
            value, _, _ = compute(table.select_raters([i, j]))
            result[(table.rater_ids[i], table.rater_ids[j])] = value
        return result

    def _metric_function(self, metric: AgreementMetric) -> Callable[[RatingTable], Tuple[float, AgreementDetails, Dict[str, Any]]]:
        if metric is AgreementMetric.PERCENT_AGREEMENT:
            return self._percent
        if metric is AgreementMetric.COHENS_KAPPA:
            return self._cohen
        if metric is AgreementMetric.FLEISS_KAPPA:
            return self._fleiss
        return self._krippendorff

    def _percent(self, table: RatingTable):
        result = PercentAgreement().calculate(table)
        details = AgreementDetails(
            rater_count=table.rater_count,
            category_count=result.category_count,
            unit_count=result.unit_count,
            observed_agreement=result.agreement
        )
        return result.agreement, details, result.to_extras()

    def _cohen(self, table: RatingTable):
        result = CohensKappa().calculate(table, weighted=self.config.weighted,
                                         category_order=self.config.category_order)
        details = AgreementDetails(
            rater_count=2,
            category_count=result.category_count,
            unit_count=result.unit_count,
            observed_agreement=result.observed_agreement,
            expected_agreement=result.expected_agreement
        )
        return result.kappa, details, result.to_extras()

    def _fleiss(self, table: RatingTable):
        result = FleissKappa().calculate(table)
        details = AgreementDetails(
            rater_count=table.rater_count,
            category_count=result.category_count,
            unit_count=result.unit_count,
            observed_agreement=result.observed_agreement,
            expected_agreement=result.expected_agreement
        )
        return result.kappa, details, result.to_extras()

    def _krippendorff(self, table: RatingTable):
        metric = KrippendorffAlpha(level=self.config.level, category_order=self.config.category_order)
        result = metric.calculate(table)
        details = AgreementDetails(
            rater_count=table.rater_count,
            category_count=result.category_count,
            unit_count=result.unit_count
        )
        return result.alpha, details, result.to_extras()

    def _bootstrap(self, table: RatingTable, compute) -> Optional[ConfidenceInterval]:
        """Percentile interval from resampling units with replacement."""
        if table.unit_count == 0:
            logger.warning("Skipping bootstrap interval: no coding units")
            return None

        rng = random.Random(self.config.seed)
        samples = self.config.bootstrap_samples
        values: List[float] = []
        for _ in range(samples):
            indices = [rng.randrange(table.unit_count) for _ in range(table.unit_count)]
            value, _, _ = compute(table.resample(indices))
            values.append(value)
        values.sort()

        tail = (1 - self.config.confidence_level) / 2
        lower_index = max(0, int(math.floor(tail * samples)))
        upper_index = min(samples - 1, int(math.ceil((1 - tail) * samples)) - 1)
        return ConfidenceInterval(
            lower=values[lower_index],
            upper=values[upper_index],
            level=self.config.confidence_level,
            samples=samples
        )


def compute_agreement(rater_records: Sequence[RaterRecord],
                      metric: Optional[Union[str, AgreementMetric]] = None,
                      weighted: bool = False,
                      level: str = "nominal",
                      category_order: Optional[Sequence[str]] = None,
                      bootstrap_samples: int = 0,
                      confidence_level: float = 0.95,
                      seed: Optional[int] = None) -> AgreementResult:
    """
    Convenience function to compute inter-rater agreement.

    Args:
        rater_records: One record per rater
        metric: Metric identifier, chosen by rater count when omitted
        weighted: Linear-weighted Cohen's Kappa for ordinal taxonomies
        level: Krippendorff measurement level
        category_order: Category rank order for ordinal/interval data
        bootstrap_samples: Number of bootstrap resamples (0 disables)
        confidence_level: Coverage of the bootstrap interval
        seed: Random seed for the bootstrap

    Returns:
        AgreementResult

    Raises:
        UnsupportedMetricError: Unknown metric identifier
        InvalidConfigurationError: Any other option out of range, e.g. an
            unknown measurement level
    """
    config = _agreement_config({
        "weighted": weighted,
        "level": level,
        "category_order": list(category_order) if category_order else None,
        "bootstrap_samples": bootstrap_samples,
        "confidence_level": confidence_level,
        "seed": seed
    })
    return AgreementCalculator(config).calculate(rater_records, metric=metric)


def pairwise_agreement(rater_records: Sequence[RaterRecord],
                       metric: Union[str, AgreementMetric] = AgreementMetric.COHENS_KAPPA) -> Dict[Tuple[str, str], float]:
    """Convenience function computing a two-rater metric for every rater pair."""
    return AgreementCalculator().pairwise(rater_records, metric=metric)
