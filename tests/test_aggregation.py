"""
Tests for risk aggregation and the shared severity cut points.
"""

import pytest

from orgpulse.detection import RiskAggregator, aggregate, aggregate_score, severity_for_score
from orgpulse.models import Severity
from tests.fixtures import indicator

WEIGHTS = {"extended_hours": 1.2, "weekend_work": 1.3}
BURNOUT_LEVELS = ("low", "moderate", "high", "critical")


class TestSeverityCuts:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, Severity.LOW),
            (24.99, Severity.LOW),
            (25, Severity.MEDIUM),
            (49.99, Severity.MEDIUM),
            (50, Severity.HIGH),
            (75, Severity.CRITICAL),
            (100, Severity.CRITICAL),
        ],
    )
    def test_cut_points(self, score, expected):
        assert severity_for_score(score) == expected


class TestAggregateScore:
    def test_no_indicators(self):
        assert aggregate([], WEIGHTS) == (0.0, Severity.LOW)

    def test_single_indicator_is_its_own_score(self):
        assert aggregate_score([indicator(score=40, severity=Severity.MEDIUM)], WEIGHTS) == pytest.approx(40)

    def test_weighted_mean_plus_boosts(self):
        indicators = [
            indicator("extended_hours", 60, Severity.HIGH),
            indicator("weekend_work", 20, Severity.LOW),
        ]
        # (60 * 1.2 + 20 * 1.3) / 2.5 = 39.2, +5 for two signals, +10 for one severe
        score, severity = aggregate(indicators, WEIGHTS)
        assert score == pytest.approx(54.2)
        assert severity == Severity.HIGH

    def test_unknown_type_weighs_one(self):
        indicators = [
            indicator("mystery", 30, Severity.MEDIUM),
            indicator("other", 50, Severity.HIGH),
        ]
        assert aggregate_score(indicators, {}) == pytest.approx(40 + 5 + 10)

    def test_clamped_to_100(self):
        indicators = [indicator(f"t{i}", 90, Severity.CRITICAL) for i in range(6)]
        assert aggregate_score(indicators, {}) == 100.0


class TestRiskAggregator:
    def test_levels_use_family_vocabulary(self):
        aggregator = RiskAggregator(WEIGHTS, BURNOUT_LEVELS)
        assert aggregator.assess([]) == (0.0, "low")
        score, level = aggregator.assess([indicator(score=40, severity=Severity.MEDIUM)])
        assert level == "moderate"

    def test_requires_four_levels(self):
        with pytest.raises(ValueError):
            RiskAggregator(WEIGHTS, ("healthy", "sick"))
