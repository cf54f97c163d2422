"""
Tests for the process degradation detector and its failure forecast.
"""

from datetime import timedelta

import pytest

from orgpulse.detection import DegradationDetector, predict_failure
from orgpulse.models import ProcessWindow, Severity, Trend
from tests.fixtures import NOW, indicator


def _window(**kwargs) -> ProcessWindow:
    kwargs.setdefault("total_events", 200)
    kwargs.setdefault("case_count", 50)
    return ProcessWindow(entity_id="billing", start=NOW - timedelta(days=14), end=NOW, **kwargs)


def _by_type(indicators):
    return {i.type: i for i in indicators}


@pytest.fixture
def detector():
    return DegradationDetector()


class TestChecks:
    def test_cycle_time_increase(self, detector):
        found = _by_type(detector.detect(_window(avg_cycle_time=130), _window(avg_cycle_time=100)))
        cycle = found["cycle_time_increase"]
        assert cycle.score == pytest.approx(60)
        assert cycle.severity == Severity.HIGH
        assert cycle.description == "Average cycle time has increased by 30%"

    def test_sensitivity_lowers_the_bar(self, detector):
        current, baseline = _window(avg_cycle_time=115), _window(avg_cycle_time=100)
        low = detector.thresholds(detector.settings(sensitivity="low"))
        assert "cycle_time_increase" not in _by_type(detector.detect(current, baseline))
        assert "cycle_time_increase" in _by_type(detector.detect(current, baseline, low))

    def test_throughput_decrease(self, detector):
        found = _by_type(detector.detect(_window(throughput_per_day=1.0), _window(throughput_per_day=2.0)))
        drop = found["throughput_decrease"]
        assert drop.severity == Severity.CRITICAL
        assert drop.trend == Trend.DECREASING
        assert drop.metadata.relative_change == pytest.approx(-0.5)

    def test_error_rate_increase(self, detector):
        found = _by_type(detector.detect(_window(error_rate=0.2), _window(error_rate=0.1)))
        errors = found["error_rate_increase"]
        assert errors.description == "Error rate is 20% (+100% vs baseline)"
        assert errors.trend == Trend.INCREASING
        assert errors.severity == Severity.CRITICAL

    def test_new_bottleneck(self, detector):
        found = _by_type(
            detector.detect(
                _window(bottleneck_steps=["approve", "review"]),
                _window(bottleneck_steps=["review"]),
            )
        )
        bottleneck = found["bottleneck_worsening"]
        assert bottleneck.score == pytest.approx(30)
        assert bottleneck.description == "1 new bottleneck(s) identified: approve"

    def test_rising_skip_rate_only(self, detector):
        rising = _by_type(detector.detect(_window(step_skip_rate=0.3), _window(step_skip_rate=0.1)))
        falling = _by_type(detector.detect(_window(step_skip_rate=0.1), _window(step_skip_rate=0.3)))
        assert rising["step_skip_increase"].severity == Severity.CRITICAL
        assert "step_skip_increase" not in falling

    def test_guard_counts_cases_not_events(self, detector):
        current = _window(total_events=500, case_count=9, error_rate=0.9)
        assert detector.detect(current, _window(error_rate=0.1)) == []

    def test_default_settings(self, detector):
        settings = detector.settings()
        assert (settings.lookback_days, settings.baseline_days, settings.min_data_points) == (14, 60, 10)

    def test_confidence(self, detector):
        assert detector.confidence(_window(), _window(case_count=100), 10) == pytest.approx(1.0)
        assert detector.confidence(_window(case_count=25), _window(case_count=0), 10) == pytest.approx(0.2)


class TestFailureForecast:
    def test_no_indicators(self):
        forecast = predict_failure([])
        assert forecast.failure_risk == 0.0
        assert forecast.time_to_failure is None

    def test_low_risk_has_no_time_to_failure(self):
        forecast = predict_failure([indicator(score=10, severity=Severity.LOW)])
        assert forecast.failure_risk == pytest.approx(0.1)
        assert forecast.time_to_failure is None

    def test_weeks_estimate(self):
        worsening = [
            indicator("cycle_time_increase", 80, Severity.CRITICAL),
            indicator("error_rate_increase", 80, Severity.CRITICAL),
        ]
        for i in worsening:
            i.metadata.relative_change = 0.5
        forecast = predict_failure(worsening)
        assert forecast.failure_risk == pytest.approx(0.4)
        assert str(forecast.time_to_failure) == "2 weeks"
        assert forecast.time_to_failure.confidence == pytest.approx(0.5)

    def test_days_estimate_when_degrading_fast(self):
        worsening = [
            indicator("cycle_time_increase", 80, Severity.CRITICAL),
            indicator("error_rate_increase", 80, Severity.CRITICAL),
        ]
        for i in worsening:
            i.metadata.relative_change = 1.0
        forecast = predict_failure(worsening)
        assert str(forecast.time_to_failure) == "8 days"

    def test_stable_indicators_do_not_project(self):
        steady = [
            indicator("cycle_time_increase", 80, Severity.CRITICAL, trend=Trend.STABLE),
            indicator("error_rate_increase", 80, Severity.CRITICAL, trend=Trend.STABLE),
        ]
        forecast = predict_failure(steady)
        assert forecast.failure_risk == pytest.approx(0.4)
        assert forecast.time_to_failure is None
