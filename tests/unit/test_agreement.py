"""
Unit tests for the inter-rater agreement metrics.

Tests percent agreement, Cohen's Kappa, Fleiss' Kappa and Krippendorff's
Alpha, metric dispatch, bootstrap intervals and interpretation.
"""

import math
import pytest
from pathlib import Path

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from qualcode.agreement import (
    AgreementCalculator, AgreementMetric, CohensKappa, FleissKappa, Interpretation,
    KrippendorffAlpha, PercentAgreement, RatingTable, compute_agreement, interpret,
    pairwise_agreement, recommend_metric
)
from qualcode.models import (
    NO_CODE, Annotation, IncompatibleRaterCountError, InsufficientRatersError,
    InvalidConfigurationError, RaterRecord, UnsupportedMetricError, group_by_rater
)


def make_record(rater_id, codes, document_id="doc-1"):
    """One annotation per position; None leaves the unit unrated."""
    annotations = [
        Annotation(
            document_id=document_id,
            category_id=code,
            start_offset=index * 10,
            end_offset=index * 10 + 5,
            coded_by=rater_id
        )
        for index, code in enumerate(codes)
        if code is not None
    ]
    return RaterRecord(rater_id=rater_id, annotations=annotations)


@pytest.fixture
def two_raters():
    """Ten units; the raters disagree on the sixth."""
    return [
        make_record("a", ["X"] * 6 + ["Y"] * 4),
        make_record("b", ["X"] * 5 + ["Y"] * 5),
    ]


@pytest.fixture
def identical_raters():
    codes = ["X", "Y", "X", "Z", "Y"]
    return [make_record("a", codes), make_record("b", codes), make_record("c", codes)]


class TestRatingTable:
    """Test alignment of rater records."""

    def test_units_follow_first_seen_order(self):
        records = [make_record("a", ["X", None, "Y"]), make_record("b", [None, "Y", "Y"])]

        table = RatingTable.from_records(records)

        assert [u.start_offset for u in table.units] == [0, 20, 10]
        assert table.ratings == [["X", None], ["Y", "Y"], [None, "Y"]]
        assert table.categories() == ["X", "Y"]

    def test_select_raters_drops_empty_units(self):
        records = [make_record("a", ["X", None]), make_record("b", ["X", None]), make_record("c", [None, "Y"])]
        table = RatingTable.from_records(records)

        pair = table.select_raters([0, 1])

        assert pair.rater_ids == ["a", "b"]
        assert pair.unit_count == 1


class TestCohensKappa:
    """Test Cohen's Kappa."""

    def test_worked_example(self, two_raters):
        result = compute_agreement(two_raters, metric="cohens-kappa")

        assert result.value == pytest.approx(0.8)
        assert result.details.observed_agreement == pytest.approx(0.9)
        assert result.details.expected_agreement == pytest.approx(0.5)
        assert result.details.unit_count == 10
        assert result.interpretation == Interpretation.SUBSTANTIAL

    def test_symmetry(self, two_raters):
        forward = compute_agreement(two_raters, metric="cohens-kappa")
        backward = compute_agreement(list(reversed(two_raters)), metric="cohens-kappa")

        assert forward.value == pytest.approx(backward.value)

    def test_perfect_agreement(self):
        records = [make_record("a", ["X", "Y", "X"]), make_record("b", ["X", "Y", "X"])]

        assert compute_agreement(records, metric="cohens-kappa").value == pytest.approx(1.0)

    def test_single_shared_category(self):
        records = [make_record("a", ["X", "X"]), make_record("b", ["X", "X"])]

        assert compute_agreement(records, metric="cohens-kappa").value == 1.0

    def test_no_overlapping_units(self):
        """Disjoint spans are counted against the no-code placeholder."""
        records = [make_record("a", ["X", "X", "X"]), make_record("b", [None, None, None, "X", "X", "X"])]

        result = compute_agreement(records, metric="cohens-kappa")

        assert result.value == pytest.approx(-1.0)
        assert result.interpretation == Interpretation.POOR
        assert NO_CODE in result.extras["categories"]

    def test_confusion_matrix(self, two_raters):
        result = compute_agreement(two_raters, metric="cohens-kappa")

        categories = result.extras["categories"]
        matrix = result.extras["confusion_matrix"]
        x, y = categories.index("X"), categories.index("Y")
        assert matrix[x][x] == 5
        assert matrix[x][y] == 1
        assert matrix[y][y] == 4
        assert sum(sum(row) for row in matrix) == 10

    def test_linear_weights_credit_near_misses(self):
        records = [make_record("a", ["1", "2", "3"]), make_record("b", ["1", "3", "3"])]

        unweighted = compute_agreement(records, metric="cohens-kappa")
        weighted = compute_agreement(records, metric="cohens-kappa", weighted=True)

        assert unweighted.value == pytest.approx(0.5)
        assert weighted.value == pytest.approx(2 / 3)
        assert weighted.extras["weighted"] is True

    def test_category_order_sets_weighted_scale(self):
        records = [make_record("a", ["low", "mid", "high", "low"]),
                   make_record("b", ["mid", "mid", "mid", "low"])]

        alphabetical = compute_agreement(records, metric="cohens-kappa", weighted=True)
        ordered = compute_agreement(records, metric="cohens-kappa", weighted=True,
                                    category_order=["low", "mid", "high"])

        assert ordered.extras["categories"] == ["low", "mid", "high", NO_CODE]
        assert alphabetical.extras["categories"] == ["high", "low", "mid", NO_CODE]
        assert ordered.value == pytest.approx(1 / 3)
        assert ordered.value != pytest.approx(alphabetical.value)

    def test_zero_units(self):
        table = RatingTable(rater_ids=["a", "b"], units=[], ratings=[])

        assert CohensKappa().calculate(table).kappa == 1.0

    def test_requires_two_raters(self, identical_raters):
        with pytest.raises(IncompatibleRaterCountError) as exc_info:
            compute_agreement(identical_raters, metric="cohens-kappa")

        assert exc_info.value.context["rater_count"] == 3


class TestFleissKappa:
    """Test Fleiss' Kappa."""

    def test_two_rater_example(self, two_raters):
        result = compute_agreement(two_raters, metric="fleiss-kappa")

        assert result.details.observed_agreement == pytest.approx(0.9)
        assert result.details.expected_agreement == pytest.approx(0.505)
        assert result.value == pytest.approx(0.395 / 0.495)

    def test_perfect_agreement(self, identical_raters):
        result = compute_agreement(identical_raters, metric="fleiss-kappa")

        assert result.value == pytest.approx(1.0)
        assert result.interpretation == Interpretation.ALMOST_PERFECT
        assert set(result.extras["category_kappas"]) == {"X", "Y", "Z"}
        assert all(v == pytest.approx(1.0) for v in result.extras["category_kappas"].values())

    def test_single_category(self):
        records = [make_record(rater, ["X", "X", "X"]) for rater in ("a", "b", "c")]

        result = compute_agreement(records, metric="fleiss-kappa")

        assert result.value == 1.0
        assert result.details.expected_agreement == pytest.approx(1.0)
        assert result.extras["category_kappas"] == {"X": 1.0}
        assert not math.isnan(result.value)

    def test_bounds_with_disagreement(self):
        records = [
            make_record("a", ["X", "Y", "X", "Y", "Z"]),
            make_record("b", ["X", "X", "Y", "Y", "Z"]),
            make_record("c", ["Y", "Y", "X", "Z", "Z"]),
        ]

        result = compute_agreement(records, metric="fleiss-kappa")

        assert -1.0 <= result.value < 1.0
        for value in result.extras["category_kappas"].values():
            assert value <= 1.0

    def test_zero_units(self):
        table = RatingTable(rater_ids=["a", "b", "c"], units=[], ratings=[])

        assert FleissKappa().calculate(table).kappa == 1.0


class TestKrippendorffAlpha:
    """Test Krippendorff's Alpha."""

    def test_nominal_example(self, two_raters):
        result = compute_agreement(two_raters, metric="krippendorff-alpha")

        assert result.value == pytest.approx(80 / 99)
        assert result.extras["observed_disagreement"] == pytest.approx(0.1)
        assert result.extras["level"] == "nominal"

    def test_missing_ratings_tolerated(self):
        records = [make_record("a", ["X", "Y", "X", "Y"]), make_record("b", ["X", "Y", "X", None])]

        result = compute_agreement(records, metric="krippendorff-alpha")

        assert result.value == pytest.approx(1.0)
        assert result.details.unit_count == 4

    def test_levels_credit_near_misses(self):
        records = [make_record("a", ["1", "2", "3", "4", "5"]), make_record("b", ["1", "2", "3", "4", "4"])]

        nominal = compute_agreement(records, metric="krippendorff-alpha").value
        ordinal = compute_agreement(records, metric="krippendorff-alpha", level="ordinal").value
        interval = compute_agreement(records, metric="krippendorff-alpha", level="interval").value
        ratio = compute_agreement(records, metric="krippendorff-alpha", level="ratio").value

        assert interval == pytest.approx(160 / 169)
        assert ratio == pytest.approx(interval)
        assert nominal < interval <= 1.0
        assert nominal < ordinal <= 1.0

    def test_category_order_for_non_numeric_interval(self):
        records = [make_record("a", ["low", "mid", "high"]), make_record("b", ["low", "mid", "mid"])]

        ordered = compute_agreement(records, metric="krippendorff-alpha", level="interval",
                                    category_order=["low", "mid", "high"])

        assert -1.0 <= ordered.value <= 1.0

    def test_unsupported_level(self):
        with pytest.raises(InvalidConfigurationError):
            KrippendorffAlpha(level="logarithmic")


class TestPercentAgreement:
    """Test percent agreement."""

    def test_worked_example(self, two_raters):
        result = compute_agreement(two_raters, metric="percent-agreement")

        assert result.value == pytest.approx(0.9)
        assert result.extras["pairwise_agreement"] == {"a-b": pytest.approx(0.9)}
        assert result.extras["compared_units"] == 10

    def test_category_agreement(self, two_raters):
        table = RatingTable.from_records(two_raters)

        result = PercentAgreement().calculate(table)

        assert result.category_agreement["X"] == pytest.approx(5 / 6)
        assert result.category_agreement["Y"] == pytest.approx(4 / 5)

    def test_units_rated_once_are_ignored(self):
        records = [make_record("a", ["X", "Y"]), make_record("b", ["X", None])]

        result = compute_agreement(records, metric="percent-agreement")

        assert result.value == 1.0
        assert result.extras["compared_units"] == 1


class TestAgreementCalculator:
    """Test metric dispatch and errors."""

    def test_metric_recommendation(self, two_raters, identical_raters):
        assert recommend_metric(2) == AgreementMetric.COHENS_KAPPA
        assert recommend_metric(4) == AgreementMetric.FLEISS_KAPPA
        assert compute_agreement(two_raters).metric == "cohens-kappa"
        assert compute_agreement(identical_raters).metric == "fleiss-kappa"

    def test_configured_metric(self, two_raters):
        calculator = AgreementCalculator({"metric": "percent-agreement"})

        assert calculator.calculate(two_raters).metric == "percent-agreement"
        assert calculator.calculate(two_raters, metric=AgreementMetric.FLEISS_KAPPA).metric == "fleiss-kappa"

    def test_insufficient_raters(self):
        with pytest.raises(InsufficientRatersError):
            compute_agreement([make_record("a", ["X"])])

        with pytest.raises(InsufficientRatersError):
            compute_agreement([])

    def test_unsupported_metric(self, two_raters):
        with pytest.raises(UnsupportedMetricError) as exc_info:
            compute_agreement(two_raters, metric="spearman")

        assert "cohens-kappa" in exc_info.value.context["supported"]

    def test_unknown_metric_in_config(self):
        with pytest.raises(UnsupportedMetricError) as exc_info:
            AgreementCalculator({"metric": "bogus"})

        assert exc_info.value.context["metric"] == "bogus"

    def test_unknown_level(self, two_raters):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            compute_agreement(two_raters, metric="krippendorff-alpha", level="bogus")

        assert exc_info.value.context["option"] == "level"
        assert exc_info.value.stage == "agreement"

    def test_option_out_of_range(self, two_raters):
        with pytest.raises(InvalidConfigurationError):
            compute_agreement(two_raters, bootstrap_samples=-1)

        with pytest.raises(InvalidConfigurationError):
            AgreementCalculator({"confidence_level": 1.5})

    def test_result_serialization(self, two_raters):
        data = compute_agreement(two_raters).to_dict()

        assert data["metric"] == "cohens-kappa"
        assert data["interpretation"] == "substantial"
        assert data["details"]["rater_count"] == 2
        assert data["confidence_interval"] is None

    def test_grouped_annotations(self):
        annotations = (make_record("user-1", ["X", "Y"]).annotations +
                       make_record("user-2", ["X", "Y"]).annotations)

        result = compute_agreement(group_by_rater(annotations))

        assert result.value == pytest.approx(1.0)


class TestBootstrap:
    """Test bootstrap confidence intervals."""

    def test_interval_contains_estimate(self, two_raters):
        result = compute_agreement(two_raters, metric="percent-agreement",
                                   bootstrap_samples=200, seed=7)

        interval = result.confidence_interval
        assert interval is not None
        assert interval.samples == 200
        assert interval.level == 0.95
        assert interval.lower <= result.value <= interval.upper

    def test_seed_makes_interval_reproducible(self, two_raters):
        first = compute_agreement(two_raters, bootstrap_samples=100, seed=3).confidence_interval
        second = compute_agreement(two_raters, bootstrap_samples=100, seed=3).confidence_interval

        assert first == second

    def test_perfect_agreement_interval(self, identical_raters):
        interval = compute_agreement(identical_raters, bootstrap_samples=50, seed=1).confidence_interval

        assert interval.lower == pytest.approx(1.0)
        assert interval.upper == pytest.approx(1.0)


class TestPairwiseAgreement:
    """Test pairwise agreement matrices."""

    def test_pairwise_cohen(self):
        records = [
            make_record("a", ["X", "Y", "X"]),
            make_record("b", ["X", "Y", "X"]),
            make_record("c", ["Y", "X", "Y"]),
        ]

        result = pairwise_agreement(records)

        assert set(result) == {("a", "b"), ("a", "c"), ("b", "c")}
        assert result[("a", "b")] == pytest.approx(1.0)
        assert result[("a", "c")] < 0

    def test_pairwise_requires_two_raters(self):
        with pytest.raises(InsufficientRatersError):
            pairwise_agreement([make_record("a", ["X"])])


class TestInterpretation:
    """Test the Landis & Koch scale."""

    @pytest.mark.parametrize("value,expected", [
        (-0.2, Interpretation.POOR),
        (0.0, Interpretation.SLIGHT),
        (0.2, Interpretation.SLIGHT),
        (0.21, Interpretation.FAIR),
        (0.5, Interpretation.MODERATE),
        (0.7, Interpretation.SUBSTANTIAL),
        (0.81, Interpretation.ALMOST_PERFECT),
        (1.0, Interpretation.ALMOST_PERFECT),
    ])
    def test_buckets(self, value, expected):
        assert interpret(value) == expected

    def test_labels(self):
        assert Interpretation.MODERATE.label() == "Moderate agreement"
        assert Interpretation.MODERATE.label("de") == "Moderate Übereinstimmung"
        assert Interpretation.POOR.label("fr") == "Poor agreement"
