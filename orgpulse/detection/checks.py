"""
orgpulse — Detector Core

One generic Detector evaluates a family's list of CheckDefinitions against a
current and a baseline metric window. Families (burnout, degradation,
conflict) differ only in their check lists, weights, recommendation text and
confidence formula.

A check fires iff reading.rate > rate threshold OR reading.change > change
threshold; either threshold may be absent. Detection is pure: no I/O.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from orgpulse.models.base import DetectorFamily, Severity, Trend
from orgpulse.models.events import MetricWindow
from orgpulse.models.indicators import RISK_LEVELS, Indicator, IndicatorMetadata

logger = logging.getLogger(__name__)

# Score cut points shared by indicator severity and entity risk level.
SEVERITY_CUTS: tuple[tuple[float, Severity], ...] = (
    (75.0, Severity.CRITICAL),
    (50.0, Severity.HIGH),
    (25.0, Severity.MEDIUM),
)

TREND_DEADBAND = 0.1


def clamp_score(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return min(100.0, max(0.0, value))


def severity_for_score(score: float) -> Severity:
    for cut, severity in SEVERITY_CUTS:
        if score >= cut:
            return severity
    return Severity.LOW


def band_index(score: float) -> int:
    """0..3 position of score on the shared cut points."""
    return {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2, Severity.CRITICAL: 3}[
        severity_for_score(score)
    ]


def relative_change(current: float, baseline: float) -> float:
    """(c - b) / b, or c itself when there is no baseline to divide by."""
    return (current - baseline) / baseline if baseline > 0 else current


def pct(value: float) -> int:
    """Whole percent, halves rounded up."""
    return int(math.floor(value * 100 + 0.5))


# =============================================================================
# THRESHOLDS
# =============================================================================


@dataclass(frozen=True)
class CheckThresholds:
    """Firing thresholds for one check plus any extra parameters it reads."""

    rate: float | None = None
    change: float | None = None
    params: Mapping[str, float] = field(default_factory=dict)

    def param(self, key: str, default: float | None = None) -> float | None:
        return self.params.get(key, default)

    def merged(self, override: Mapping[str, Any] | None) -> "CheckThresholds":
        """Apply an override block {rate?, change?, <param>?}."""
        if not override:
            return self
        params = dict(self.params)
        rate, change = self.rate, self.change
        for key, value in override.items():
            if key == "rate":
                rate = None if value is None else float(value)
            elif key == "change":
                change = None if value is None else float(value)
            else:
                params[key] = float(value)
        return CheckThresholds(rate=rate, change=change, params=params)


@dataclass
class ThresholdSet:
    """Thresholds for every check of one family, plus the minimum-data guard."""

    checks: dict[str, CheckThresholds]
    min_data_points: int

    def for_check(self, check: "CheckDefinition") -> CheckThresholds:
        return self.checks.get(check.type, check.defaults)


# =============================================================================
# CHECKS
# =============================================================================


@dataclass
class CheckReading:
    """
    What one check measured.

    `change` is compared against the change threshold and may be oriented so
    that "worse" is positive (e.g. a throughput decrease); `relative_change`
    keeps the signed change of the underlying value for reporting.
    """

    data_points: int
    rate: float | None = None
    change: float | None = None
    relative_change: float | None = None
    current_value: float | None = None
    baseline_value: float | None = None
    involved_parties: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def template_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "rate_pct": pct(self.rate or 0.0),
            "change_pct": pct(self.change or 0.0),
            "signed_change_pct": f"{'+' if (self.change or 0) > 0 else ''}{pct(self.change or 0.0)}",
            "data_points": self.data_points,
        }
        fields.update(self.details)
        return fields


def trend_from_change(reading: CheckReading) -> Trend:
    change = reading.change or 0.0
    if change > TREND_DEADBAND:
        return Trend.INCREASING
    if change < -TREND_DEADBAND:
        return Trend.DECREASING
    return Trend.STABLE


def fixed_trend(trend: Trend) -> Callable[[CheckReading], Trend]:
    return lambda reading: trend


Measure = Callable[[MetricWindow, MetricWindow, CheckThresholds], CheckReading | None]


@dataclass(frozen=True)
class CheckDefinition:
    """
    One indicator type.

    measure returns None when the check does not apply (missing baseline,
    unmet precondition). score maps the reading to a raw score that is then
    clamped to [0, 100].
    """

    type: str
    weight: float
    measure: Measure
    score: Callable[[CheckReading], float]
    description: str
    defaults: CheckThresholds = field(default_factory=CheckThresholds)
    trend: Callable[[CheckReading], Trend] = trend_from_change
    recommendations: tuple[str, ...] = ()
    severe_recommendations: tuple[str, ...] = ()  # added when severity is high or critical

    def fires(self, reading: CheckReading, thresholds: CheckThresholds) -> bool:
        if thresholds.rate is not None and reading.rate is not None and reading.rate > thresholds.rate:
            return True
        if thresholds.change is not None and reading.change is not None and reading.change > thresholds.change:
            return True
        return False

    def evaluate(
        self, current: MetricWindow, baseline: MetricWindow, thresholds: CheckThresholds
    ) -> Indicator | None:
        reading = self.measure(current, baseline, thresholds)
        if reading is None or not self.fires(reading, thresholds):
            return None
        score = clamp_score(self.score(reading))
        return Indicator(
            type=self.type,
            severity=severity_for_score(score),
            score=score,
            description=self.description.format(**reading.template_fields()),
            data_point_count=reading.data_points,
            trend=self.trend(reading),
            metadata=IndicatorMetadata(
                rate=reading.rate,
                relative_change=reading.relative_change if reading.relative_change is not None else reading.change,
                current_value=reading.current_value,
                baseline_value=reading.baseline_value,
                involved_parties=list(dict.fromkeys(reading.involved_parties)),
            ),
        )


# =============================================================================
# DETECTOR
# =============================================================================


@dataclass(frozen=True)
class FamilySettings:
    """Resolved per-run settings for one family."""

    lookback_days: int
    baseline_days: int
    min_data_points: int
    sensitivity: str = "medium"
    params: Mapping[str, float] = field(default_factory=dict)

    def param(self, key: str, default: float) -> float:
        return self.params.get(key, default)


class Detector(ABC):
    """
    Generic baseline-vs-current detector.

    Subclasses provide:
    - family, checks, default settings and sensitivity tables
    - confidence(): data-volume based confidence in [0, 1]
    - urgency: level -> (first recommendation, last recommendation)
    """

    family: DetectorFamily
    checks: tuple[CheckDefinition, ...] = ()
    default_lookback_days: int = 30
    default_baseline_days: int = 90
    default_min_data_points: int = 20
    sensitivity_tables: dict[str, dict[str, dict[str, float]]] = {}
    urgency: dict[str, tuple[str | None, str | None]] = {}

    @property
    def weights(self) -> dict[str, float]:
        return {c.type: c.weight for c in self.checks}

    @property
    def levels(self) -> tuple[str, str, str, str]:
        return RISK_LEVELS[self.family]

    # =========================================================================
    # Settings
    # =========================================================================

    def settings(self, overrides: Mapping[str, Any] | None = None, **options: Any) -> FamilySettings:
        """
        Resolve settings: built-in defaults, then the threshold-file block for
        this family, then explicit per-run options (None values ignored).
        """
        overrides = overrides or {}
        values = {
            "lookback_days": overrides.get("lookback_days", self.default_lookback_days),
            "baseline_days": overrides.get("baseline_days", self.default_baseline_days),
            "min_data_points": overrides.get("min_data_points", self.default_min_data_points),
            "sensitivity": "medium",
        }
        params = {
            k: float(v)
            for k, v in overrides.items()
            if k not in values and k not in ("checks", "sensitivity") and isinstance(v, int | float)
        }
        for key, value in options.items():
            if value is None:
                continue
            if key in values:
                values[key] = value
            else:
                params[key] = float(value)
        return FamilySettings(
            lookback_days=int(values["lookback_days"]),
            baseline_days=int(values["baseline_days"]),
            min_data_points=int(values["min_data_points"]),
            sensitivity=str(values["sensitivity"]),
            params=params,
        )

    def thresholds(
        self, settings: FamilySettings, overrides: Mapping[str, Any] | None = None
    ) -> ThresholdSet:
        """
        Per-check thresholds: check defaults, built-in sensitivity table, then
        the threshold file's `checks` and `sensitivity.<level>` blocks.
        Family params (business hours, min interactions) ride along on every check.
        """
        overrides = overrides or {}
        file_checks = overrides.get("checks") or {}
        file_sensitivity = (overrides.get("sensitivity") or {}).get(settings.sensitivity) or {}
        builtin_sensitivity = self.sensitivity_tables.get(settings.sensitivity, {})

        resolved: dict[str, CheckThresholds] = {}
        for check in self.checks:
            t = replace(check.defaults, params={**check.defaults.params, **settings.params})
            t = t.merged(builtin_sensitivity.get(check.type))
            t = t.merged(file_checks.get(check.type))
            t = t.merged(file_sensitivity.get(check.type))
            resolved[check.type] = t
        return ThresholdSet(checks=resolved, min_data_points=settings.min_data_points)

    def default_thresholds(self) -> ThresholdSet:
        return self.thresholds(self.settings())

    # =========================================================================
    # Detection
    # =========================================================================

    def has_enough_data(self, current: MetricWindow, thresholds: ThresholdSet) -> bool:
        return current.total_events >= thresholds.min_data_points

    def detect(
        self,
        current: MetricWindow,
        baseline: MetricWindow,
        thresholds: ThresholdSet | None = None,
    ) -> list[Indicator]:
        """Evaluate every check; empty list below the minimum-data guard."""
        if thresholds is None:
            thresholds = self.default_thresholds()
        if not self.has_enough_data(current, thresholds):
            return []
        indicators = []
        for check in self.checks:
            indicator = check.evaluate(current, baseline, thresholds.for_check(check))
            if indicator is not None:
                indicators.append(indicator)
        return indicators

    # =========================================================================
    # Recommendations / confidence
    # =========================================================================

    def recommend(self, indicators: Sequence[Indicator], level: str, **context: Any) -> list[str]:
        """Per-indicator advice, family extras, then urgency framing; deduplicated in order."""
        by_type = {c.type: c for c in self.checks}
        actions: list[str] = []
        for indicator in indicators:
            check = by_type.get(indicator.type)
            if check is None:
                continue
            actions.extend(check.recommendations)
            if indicator.severity in (Severity.HIGH, Severity.CRITICAL):
                actions.extend(check.severe_recommendations)
        actions.extend(self.extra_recommendations(indicators, level, **context))

        first, last = self.urgency.get(level, (None, None))
        if first:
            actions.insert(0, first)
        if last:
            actions.append(last)
        return list(dict.fromkeys(actions))

    def extra_recommendations(self, indicators: Sequence[Indicator], level: str, **context: Any) -> list[str]:
        return []

    @abstractmethod
    def confidence(self, current: MetricWindow, baseline: MetricWindow, min_data_points: int) -> float:
        """Data-volume based confidence in [0, 1]."""
