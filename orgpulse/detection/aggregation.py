"""
Risk Aggregator.

score = weighted mean of indicator scores
        + min(20, (n - 1) * 5)          # several signals at once
        + 10 * #(high or critical)      # severe signals
clamped to [0, 100]. No indicators means 0 and the lowest level.
"""

from collections.abc import Mapping, Sequence

from orgpulse.models.base import Severity
from orgpulse.models.indicators import Indicator

from .checks import band_index, clamp_score, severity_for_score

DEFAULT_WEIGHT = 1.0
MULTI_SIGNAL_STEP = 5.0
MULTI_SIGNAL_CAP = 20.0
SEVERE_BOOST = 10.0


def aggregate_score(indicators: Sequence[Indicator], weights: Mapping[str, float]) -> float:
    if not indicators:
        return 0.0
    weighted_sum = 0.0
    total_weight = 0.0
    for indicator in indicators:
        weight = weights.get(indicator.type, DEFAULT_WEIGHT)
        weighted_sum += indicator.score * weight
        total_weight += weight
    base = weighted_sum / total_weight if total_weight > 0 else 0.0
    count_boost = min(MULTI_SIGNAL_CAP, (len(indicators) - 1) * MULTI_SIGNAL_STEP)
    severe = sum(1 for i in indicators if i.severity in (Severity.HIGH, Severity.CRITICAL))
    return clamp_score(base + count_boost + severe * SEVERE_BOOST)


def aggregate(indicators: Sequence[Indicator], weights: Mapping[str, float]) -> tuple[float, Severity]:
    """(score, severity band) for a set of indicators."""
    score = aggregate_score(indicators, weights)
    return score, severity_for_score(score)


class RiskAggregator:
    """Aggregates with a family's weights and names the result in its level vocabulary."""

    def __init__(self, weights: Mapping[str, float], levels: Sequence[str]):
        if len(levels) != 4:
            raise ValueError(f"Expected four risk levels, got {len(levels)}")
        self.weights = dict(weights)
        self.levels = tuple(levels)

    def assess(self, indicators: Sequence[Indicator]) -> tuple[float, str]:
        score = aggregate_score(indicators, self.weights)
        return score, self.levels[band_index(score)]
