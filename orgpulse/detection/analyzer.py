"""
Per-entity assessment pipeline.

window -> detect -> aggregate -> RiskAssessment, for one entity of one
family. Returns None when the entity is below the minimum-data guard.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from orgpulse import config
from orgpulse.cancellation import CancellationToken
from orgpulse.models.base import FAMILY_ENTITY_TYPE, DetectorFamily, utcnow
from orgpulse.models.contracts import DetectionOptions
from orgpulse.models.events import DateRange, Entity, MetricWindow
from orgpulse.models.indicators import RiskAssessment

from .aggregation import RiskAggregator
from .baseline import BaselineCalculator, analysis_ranges
from .burnout import BurnoutDetector
from .checks import Detector, FamilySettings, ThresholdSet
from .conflict import ConflictDetector, affected_relationships
from .degradation import DegradationDetector, predict_failure

logger = logging.getLogger(__name__)

DETECTORS: dict[DetectorFamily, type[Detector]] = {
    DetectorFamily.BURNOUT: BurnoutDetector,
    DetectorFamily.DEGRADATION: DegradationDetector,
    DetectorFamily.CONFLICT: ConflictDetector,
}


@dataclass
class FamilyPlan:
    """Everything needed to analyze every entity of one family in one run."""

    family: DetectorFamily
    detector: Detector
    settings: FamilySettings
    thresholds: ThresholdSet
    aggregator: RiskAggregator
    current_range: DateRange
    baseline_range: DateRange


class EntityAnalyzer:
    def __init__(self, calculator: BaselineCalculator, threshold_overrides: Mapping[str, Any] | None = None):
        self.calculator = calculator
        self.threshold_overrides = dict(threshold_overrides or {})

    def plan(
        self,
        family: DetectorFamily,
        options: DetectionOptions | None = None,
        now: datetime | None = None,
    ) -> FamilyPlan:
        options = options or DetectionOptions()
        detector = DETECTORS[family]()
        overrides = config.family_overrides(str(family), self.threshold_overrides)
        run_options: dict[str, Any] = {
            "lookback_days": options.lookback_days,
            "baseline_days": options.baseline_days,
            "min_data_points": options.min_data_points,
            "sensitivity": options.sensitivity,
        }
        if family == DetectorFamily.BURNOUT:
            run_options["business_hours_start"] = options.business_hours_start
            run_options["business_hours_end"] = options.business_hours_end
        settings = detector.settings(overrides, **run_options)
        current_range, baseline_range = analysis_ranges(
            now or utcnow(), settings.lookback_days, settings.baseline_days
        )
        return FamilyPlan(
            family=family,
            detector=detector,
            settings=settings,
            thresholds=detector.thresholds(settings, overrides),
            aggregator=RiskAggregator(detector.weights, detector.levels),
            current_range=current_range,
            baseline_range=baseline_range,
        )

    def _windows(
        self, plan: FamilyPlan, entity: Entity, token: CancellationToken | None
    ) -> tuple[MetricWindow, MetricWindow]:
        org = entity.organization_id
        cur, base = plan.current_range, plan.baseline_range
        calc = self.calculator
        if plan.family == DetectorFamily.BURNOUT:
            hours = plan.detector.business_hours(plan.settings)
            return (
                calc.work_pattern_window(org, entity.entity_id, cur.start, cur.end, hours, token=token),
                calc.work_pattern_window(org, entity.entity_id, base.start, base.end, hours, token=token),
            )
        if plan.family == DetectorFamily.DEGRADATION:
            return (
                calc.process_window(org, entity.entity_id, cur.start, cur.end, token=token),
                calc.process_window(org, entity.entity_id, base.start, base.end, token=token),
            )
        members = calc.directory.team_members(org, entity.entity_id, token=token)
        return (
            calc.team_window(org, entity.entity_id, cur.start, cur.end, token=token, members=members),
            calc.team_window(org, entity.entity_id, base.start, base.end, token=token, members=members),
        )

    def analyze(
        self, plan: FamilyPlan, entity: Entity, token: CancellationToken | None = None
    ) -> RiskAssessment | None:
        current, baseline = self._windows(plan, entity, token)
        return self.assess_windows(plan, entity, current, baseline)

    def assess_windows(
        self, plan: FamilyPlan, entity: Entity, current: MetricWindow, baseline: MetricWindow
    ) -> RiskAssessment | None:
        """The pure half of analyze(): windows in, assessment out."""
        if not plan.detector.has_enough_data(current, plan.thresholds):
            logger.debug(
                "Skipping %s %s: %d data points below minimum %d",
                plan.family,
                entity.entity_id,
                current.total_events,
                plan.thresholds.min_data_points,
            )
            return None
        indicators = plan.detector.detect(current, baseline, plan.thresholds)
        score, level = plan.aggregator.assess(indicators)

        relationships = []
        forecast = None
        if plan.family == DetectorFamily.CONFLICT:
            relationships = affected_relationships(
                current,
                baseline,
                plan.thresholds,
                int(plan.settings.param("min_interactions", 5)),
            )
        elif plan.family == DetectorFamily.DEGRADATION:
            forecast = predict_failure(indicators)

        return RiskAssessment(
            organization_id=entity.organization_id,
            family=plan.family,
            entity_type=FAMILY_ENTITY_TYPE[plan.family],
            entity_id=entity.entity_id,
            entity_name=entity.display_name,
            overall_score=score,
            risk_level=level,
            indicators=indicators,
            recommended_actions=plan.detector.recommend(indicators, level, relationships=relationships),
            analysis_window=plan.current_range,
            baseline_window=plan.baseline_range,
            confidence=plan.detector.confidence(current, baseline, plan.thresholds.min_data_points),
            analyzed_at=utcnow(),
            relationships=relationships,
            forecast=forecast,
        )
