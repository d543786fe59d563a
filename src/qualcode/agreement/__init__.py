"""
Agreement metrics for inter-rater reliability.

This module measures how consistently independent coders assign categories
to the same spans of text.
"""

from .calculator import (
    AgreementCalculator, AgreementMetric, compute_agreement, pairwise_agreement, recommend_metric
)
from .cohen import CohensKappa, CohensKappaResult
from .fleiss import FleissKappa, FleissKappaResult
from .interpretation import Interpretation, interpret
from .krippendorff import KrippendorffAlpha, KrippendorffAlphaResult
from .percent import PercentAgreement, PercentAgreementResult
from .table import RatingTable

__all__ = [
    'AgreementCalculator',
    'AgreementMetric',
    'compute_agreement',
    'pairwise_agreement',
    'recommend_metric',
    'CohensKappa',
    'CohensKappaResult',
    'FleissKappa',
    'FleissKappaResult',
    'Interpretation',
    'interpret',
    'KrippendorffAlpha',
    'KrippendorffAlphaResult',
    'PercentAgreement',
    'PercentAgreementResult',
    'RatingTable',
]
