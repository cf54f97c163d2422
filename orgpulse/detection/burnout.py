"""
Burnout risk: per-person work-pattern checks.

Compares a person's recent communication pattern against their own history:
share of after-hours and weekend activity, response speed, message length,
weekly volume and late-night activity.
"""

from orgpulse.models.base import DetectorFamily, Trend
from orgpulse.models.events import WorkPatternWindow

from .checks import (
    CheckDefinition,
    CheckReading,
    CheckThresholds,
    Detector,
    fixed_trend,
    relative_change,
)


def _extended_hours(current: WorkPatternWindow, baseline: WorkPatternWindow, t: CheckThresholds):
    rate = current.after_hours_rate
    start = int(t.param("business_hours_start", 8))
    end = int(t.param("business_hours_end", 18))
    return CheckReading(
        data_points=current.after_hours_events,
        rate=rate,
        change=relative_change(rate, baseline.after_hours_rate),
        current_value=rate,
        baseline_value=baseline.after_hours_rate,
        details={"hours": f"{start}:00-{end}:00"},
    )


def _weekend_work(current: WorkPatternWindow, baseline: WorkPatternWindow, t: CheckThresholds):
    rate = current.weekend_rate
    return CheckReading(
        data_points=current.weekend_events,
        rate=rate,
        change=relative_change(rate, baseline.weekend_rate),
        current_value=rate,
        baseline_value=baseline.weekend_rate,
    )


def _response_delay(current: WorkPatternWindow, baseline: WorkPatternWindow, t: CheckThresholds):
    if baseline.avg_response_time_ms <= 0 or current.avg_response_time_ms <= 0:
        return None
    return CheckReading(
        data_points=current.total_events,
        change=relative_change(current.avg_response_time_ms, baseline.avg_response_time_ms),
        current_value=current.avg_response_time_ms,
        baseline_value=baseline.avg_response_time_ms,
    )


def _workload_spike(current: WorkPatternWindow, baseline: WorkPatternWindow, t: CheckThresholds):
    recent = current.recent_weekly_volume(weeks=2)
    if recent is None or baseline.avg_weekly_volume <= 0:
        return None
    reference = baseline.avg_weekly_volume
    return CheckReading(
        data_points=current.total_events,
        change=relative_change(recent, reference),
        current_value=recent,
        baseline_value=reference,
    )


def _response_brevity(current: WorkPatternWindow, baseline: WorkPatternWindow, t: CheckThresholds):
    if baseline.avg_message_length <= 0 or current.avg_message_length <= 0:
        return None
    decrease = (baseline.avg_message_length - current.avg_message_length) / baseline.avg_message_length
    return CheckReading(
        data_points=current.total_events,
        change=decrease,
        relative_change=-decrease,
        current_value=current.avg_message_length,
        baseline_value=baseline.avg_message_length,
    )


def _after_hours_activity(current: WorkPatternWindow, baseline: WorkPatternWindow, t: CheckThresholds):
    return CheckReading(
        data_points=current.late_night_events,
        rate=current.late_night_rate,
        current_value=current.late_night_rate,
        baseline_value=baseline.late_night_rate,
    )


def _volume_change(current: WorkPatternWindow, baseline: WorkPatternWindow, t: CheckThresholds):
    if baseline.avg_weekly_volume <= 0 or not current.volume_by_week:
        return None
    change = relative_change(current.avg_weekly_volume, baseline.avg_weekly_volume)
    return CheckReading(
        data_points=current.total_events,
        change=abs(change),
        relative_change=change,
        current_value=current.avg_weekly_volume,
        baseline_value=baseline.avg_weekly_volume,
        details={"direction": "higher" if change > 0 else "lower"},
    )


def _volume_trend(reading: CheckReading) -> Trend:
    return Trend.INCREASING if (reading.relative_change or 0) > 0 else Trend.DECREASING


BURNOUT_CHECKS: tuple[CheckDefinition, ...] = (
    CheckDefinition(
        type="extended_hours",
        weight=1.2,
        measure=_extended_hours,
        score=lambda r: r.rate * 200 + r.change * 50,
        description="{rate_pct}% of communications occur outside business hours ({hours})",
        defaults=CheckThresholds(rate=0.15, change=0.20),
        recommendations=("Consider reviewing workload distribution and delegation opportunities",),
        severe_recommendations=("Recommend scheduling a private check-in to discuss work-life balance",),
    ),
    CheckDefinition(
        type="weekend_work",
        weight=1.3,
        measure=_weekend_work,
        score=lambda r: r.rate * 300 + r.change * 40,
        description="{rate_pct}% of communications occur on weekends",
        defaults=CheckThresholds(rate=0.10, change=0.30),
        recommendations=(
            "Evaluate if weekend work is due to deadline pressure or workload issues",
            "Consider implementing clearer boundaries for after-hours communication",
        ),
    ),
    CheckDefinition(
        type="response_delay",
        weight=1.0,
        measure=_response_delay,
        score=lambda r: r.change * 100,
        description="Response times have increased by {change_pct}% compared to baseline",
        defaults=CheckThresholds(change=0.30),
        trend=fixed_trend(Trend.INCREASING),
        recommendations=(
            "Review current project load and prioritization",
            "Consider if additional support or resources are needed",
        ),
    ),
    CheckDefinition(
        type="workload_spike",
        weight=1.5,
        measure=_workload_spike,
        score=lambda r: r.change * 80,
        description="Weekly communication volume is {change_pct}% higher than baseline average",
        defaults=CheckThresholds(change=0.40),
        trend=fixed_trend(Trend.INCREASING),
        recommendations=(
            "Assess if workload increase is temporary or structural",
            "Consider redistributing tasks or bringing in additional support",
        ),
    ),
    CheckDefinition(
        type="response_brevity",
        weight=0.8,
        measure=_response_brevity,
        score=lambda r: r.change * 100,
        description="Average message length has decreased by {change_pct}%",
        defaults=CheckThresholds(change=0.30),
        trend=fixed_trend(Trend.DECREASING),
        recommendations=("Monitor for signs of disengagement or frustration",),
    ),
    CheckDefinition(
        type="after_hours_activity",
        weight=1.4,
        measure=_after_hours_activity,
        score=lambda r: r.rate * 500,
        description="{rate_pct}% of communications occur late at night (10 PM - 5 AM)",
        defaults=CheckThresholds(rate=0.05),
        trend=fixed_trend(Trend.STABLE),
        recommendations=(
            "Late night work patterns may indicate overwhelm or difficulty disconnecting",
            "Consider discussing time management and boundary setting",
        ),
    ),
    CheckDefinition(
        type="communication_volume_change",
        weight=1.0,
        measure=_volume_change,
        score=lambda r: r.change * 60,
        description="Average weekly communication volume is {change_pct}% {direction} than baseline",
        defaults=CheckThresholds(change=0.50),
        trend=_volume_trend,
        recommendations=("Check in on changes in role, scope or engagement",),
    ),
)


class BurnoutDetector(Detector):
    family = DetectorFamily.BURNOUT
    checks = BURNOUT_CHECKS
    default_lookback_days = 30
    default_baseline_days = 90
    default_min_data_points = 20
    urgency = {
        "critical": (
            "URGENT: Immediate management attention recommended",
            "Consider temporary workload reduction or time off",
        ),
        "high": ("Schedule a check-in meeting within the next week", None),
    }

    def settings(self, overrides=None, **options):
        base = {"business_hours_start": 8, "business_hours_end": 18}
        return super().settings({**base, **(overrides or {})}, **options)

    def business_hours(self, settings) -> tuple[int, int]:
        return (
            int(settings.param("business_hours_start", 8)),
            int(settings.param("business_hours_end", 18)),
        )

    def confidence(self, current: WorkPatternWindow, baseline: WorkPatternWindow, min_data_points: int) -> float:
        data_points = current.total_events
        volume = min(1.0, data_points / (min_data_points * 5)) if min_data_points > 0 else 1.0
        baseline_available = 0.3 if baseline.total_events > 0 else 0.0
        minimum_met = 0.2 if data_points >= min_data_points else 0.0
        return min(1.0, volume * 0.5 + baseline_available + minimum_met)
