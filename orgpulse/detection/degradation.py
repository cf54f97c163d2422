"""
Process degradation: case-level checks per process, plus a failure forecast.
"""

import math
from collections.abc import Sequence

from orgpulse.models.base import DetectorFamily, Severity, Trend
from orgpulse.models.events import ProcessWindow
from orgpulse.models.indicators import FailureForecast, Indicator, TimeToFailure

from .checks import (
    CheckDefinition,
    CheckReading,
    CheckThresholds,
    Detector,
    fixed_trend,
    relative_change,
)

FAILURE_SEVERITY_WEIGHT = {
    Severity.CRITICAL: 0.4,
    Severity.HIGH: 0.3,
    Severity.MEDIUM: 0.2,
    Severity.LOW: 0.1,
}
FORECAST_MIN_RISK = 0.3
FORECAST_WINDOW_WEEKS = 4

DEGRADATION_SENSITIVITY: dict[str, dict[str, dict[str, float]]] = {
    "low": {
        "cycle_time_increase": {"change": 0.10},
        "throughput_decrease": {"change": 0.10},
        "error_rate_increase": {"change": 0.15},
        "variance_increase": {"change": 0.20},
    },
    "medium": {
        "cycle_time_increase": {"change": 0.20},
        "throughput_decrease": {"change": 0.15},
        "error_rate_increase": {"change": 0.20},
        "variance_increase": {"change": 0.30},
    },
    "high": {
        "cycle_time_increase": {"change": 0.15},
        "throughput_decrease": {"change": 0.12},
        "error_rate_increase": {"change": 0.18},
        "variance_increase": {"change": 0.25},
    },
}


def _cycle_time(current: ProcessWindow, baseline: ProcessWindow, t: CheckThresholds):
    if baseline.avg_cycle_time <= 0:
        return None
    return CheckReading(
        data_points=current.case_count,
        change=relative_change(current.avg_cycle_time, baseline.avg_cycle_time),
        current_value=current.avg_cycle_time,
        baseline_value=baseline.avg_cycle_time,
    )


def _throughput(current: ProcessWindow, baseline: ProcessWindow, t: CheckThresholds):
    if baseline.throughput_per_day <= 0:
        return None
    decrease = (baseline.throughput_per_day - current.throughput_per_day) / baseline.throughput_per_day
    return CheckReading(
        data_points=current.case_count,
        change=decrease,
        relative_change=-decrease,
        current_value=current.throughput_per_day,
        baseline_value=baseline.throughput_per_day,
    )


def _error_rate(current: ProcessWindow, baseline: ProcessWindow, t: CheckThresholds):
    if current.error_rate <= 0:
        return None
    return CheckReading(
        data_points=current.case_count,
        rate=current.error_rate,
        change=relative_change(current.error_rate, baseline.error_rate),
        current_value=current.error_rate,
        baseline_value=baseline.error_rate,
    )


def _variance(current: ProcessWindow, baseline: ProcessWindow, t: CheckThresholds):
    if baseline.cycle_time_variance <= 0:
        return None
    return CheckReading(
        data_points=current.case_count,
        change=relative_change(current.cycle_time_variance, baseline.cycle_time_variance),
        current_value=current.cycle_time_variance,
        baseline_value=baseline.cycle_time_variance,
    )


def _bottlenecks(current: ProcessWindow, baseline: ProcessWindow, t: CheckThresholds):
    known = set(baseline.bottleneck_steps)
    new_steps = [s for s in current.bottleneck_steps if s not in known]
    cur_n, base_n = len(current.bottleneck_steps), len(baseline.bottleneck_steps)
    return CheckReading(
        data_points=len(new_steps),
        rate=float(len(new_steps)),
        relative_change=(cur_n - base_n) / max(1, base_n),
        current_value=float(cur_n),
        baseline_value=float(base_n),
        details={"count": len(new_steps), "steps": ", ".join(new_steps)},
    )


def _rising_rate(current_rate: float, baseline_rate: float, case_count: int) -> CheckReading | None:
    if current_rate <= baseline_rate:
        return None
    return CheckReading(
        data_points=case_count,
        rate=current_rate,
        change=relative_change(current_rate, baseline_rate),
        current_value=current_rate,
        baseline_value=baseline_rate,
    )


def _step_skip(current: ProcessWindow, baseline: ProcessWindow, t: CheckThresholds):
    return _rising_rate(current.step_skip_rate, baseline.step_skip_rate, current.case_count)


def _rework(current: ProcessWindow, baseline: ProcessWindow, t: CheckThresholds):
    return _rising_rate(current.rework_rate, baseline.rework_rate, current.case_count)


def _error_trend(reading: CheckReading) -> Trend:
    return Trend.INCREASING if (reading.change or 0) > 0 else Trend.STABLE


DEGRADATION_CHECKS: tuple[CheckDefinition, ...] = (
    CheckDefinition(
        type="cycle_time_increase",
        weight=1.2,
        measure=_cycle_time,
        score=lambda r: r.change * 200,
        description="Average cycle time has increased by {change_pct}%",
        defaults=CheckThresholds(change=0.20),
        trend=fixed_trend(Trend.INCREASING),
        recommendations=(
            "Review process steps for inefficiencies or blockers",
            "Analyze resource allocation and capacity",
        ),
    ),
    CheckDefinition(
        type="throughput_decrease",
        weight=1.3,
        measure=_throughput,
        score=lambda r: r.change * 200,
        description="Daily throughput has decreased by {change_pct}%",
        defaults=CheckThresholds(change=0.15),
        trend=fixed_trend(Trend.DECREASING),
        recommendations=(
            "Investigate capacity constraints and resource availability",
            "Review for process blockers or dependencies",
        ),
    ),
    CheckDefinition(
        type="error_rate_increase",
        weight=1.5,
        measure=_error_rate,
        score=lambda r: r.rate * 300 + r.change * 50,
        description="Error rate is {rate_pct}% ({signed_change_pct}% vs baseline)",
        defaults=CheckThresholds(rate=0.10, change=0.20),
        trend=_error_trend,
        recommendations=(
            "Conduct root cause analysis for recent errors",
            "Review quality control checkpoints",
            "Consider additional training or documentation",
        ),
    ),
    CheckDefinition(
        type="variance_increase",
        weight=0.8,
        measure=_variance,
        score=lambda r: r.change * 150,
        description="Cycle time variance has increased by {change_pct}%",
        defaults=CheckThresholds(change=0.30),
        trend=fixed_trend(Trend.INCREASING),
        recommendations=(
            "Standardize process execution across participants",
            "Identify and address edge cases causing variability",
        ),
    ),
    CheckDefinition(
        type="bottleneck_worsening",
        weight=1.1,
        measure=_bottlenecks,
        score=lambda r: r.rate * 30,
        description="{count} new bottleneck(s) identified: {steps}",
        defaults=CheckThresholds(rate=0.0),
        trend=fixed_trend(Trend.INCREASING),
        recommendations=(
            "Allocate additional resources to bottleneck steps",
            "Evaluate automation opportunities for bottleneck activities",
        ),
    ),
    CheckDefinition(
        type="step_skip_increase",
        weight=1.0,
        measure=_step_skip,
        score=lambda r: r.rate * 200 + r.change * 50,
        description="Process step skip rate is {rate_pct}%",
        defaults=CheckThresholds(rate=0.15, change=0.20),
        trend=fixed_trend(Trend.INCREASING),
        recommendations=(
            "Review if skipped steps are necessary",
            "Investigate why participants are circumventing process steps",
        ),
    ),
    CheckDefinition(
        type="rework_rate_increase",
        weight=1.2,
        measure=_rework,
        score=lambda r: r.rate * 300 + r.change * 50,
        description="Rework rate is {rate_pct}%",
        defaults=CheckThresholds(rate=0.10, change=0.20),
        trend=fixed_trend(Trend.INCREASING),
        recommendations=(
            "Analyze quality issues causing rework",
            "Implement earlier validation checkpoints",
        ),
    ),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def predict_failure(indicators: Sequence[Indicator]) -> FailureForecast:
    """
    Failure risk from the mean severity weight of the indicators, and a linear
    projection of the summed worsening change to a time-to-failure estimate.
    """
    if not indicators:
        return FailureForecast(failure_risk=0.0)

    total_weight = 0.0
    degradation_rate = 0.0
    for indicator in indicators:
        total_weight += FAILURE_SEVERITY_WEIGHT[indicator.severity]
        change = indicator.metadata.relative_change or 0.0
        if indicator.trend != Trend.STABLE and change > 0:
            degradation_rate += change
    failure_risk = min(1.0, total_weight / len(indicators))

    if degradation_rate <= 0 or failure_risk <= FORECAST_MIN_RISK:
        return FailureForecast(failure_risk=failure_risk)

    weeks = (1 - failure_risk) / (degradation_rate / FORECAST_WINDOW_WEEKS)
    if weeks < 2:
        ttf = TimeToFailure(value=_round_half_up(weeks * 7), unit="days", confidence=0.6)
    elif weeks < 12:
        ttf = TimeToFailure(value=_round_half_up(weeks), unit="weeks", confidence=0.5)
    else:
        ttf = TimeToFailure(value=_round_half_up(weeks / 4), unit="months", confidence=0.3)
    return FailureForecast(failure_risk=failure_risk, time_to_failure=ttf)


class DegradationDetector(Detector):
    family = DetectorFamily.DEGRADATION
    checks = DEGRADATION_CHECKS
    default_lookback_days = 14
    default_baseline_days = 60
    default_min_data_points = 10
    sensitivity_tables = DEGRADATION_SENSITIVITY
    urgency = {
        "critical": (
            "CRITICAL: Immediate process intervention required",
            "Consider temporary process halt for root cause analysis",
        ),
        "degrading": ("Schedule process review within the next week", None),
    }

    def has_enough_data(self, current: ProcessWindow, thresholds) -> bool:
        # The guard counts completed cases, which never exceed the event count.
        return current.case_count >= thresholds.min_data_points

    def confidence(self, current: ProcessWindow, baseline: ProcessWindow, min_data_points: int) -> float:
        minimum = max(1, min_data_points)
        current_score = min(1.0, current.case_count / (minimum * 5)) * 0.4
        baseline_score = min(1.0, baseline.case_count / (minimum * 10)) * 0.4
        both_met = current.case_count >= minimum and baseline.case_count >= minimum
        return current_score + baseline_score + (0.2 if both_met else 0.0)
