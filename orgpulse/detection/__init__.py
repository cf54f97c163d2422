"""
orgpulse — Detection

Baseline windows, the generic check-driven detector, the three detector
families and the risk aggregator.
"""

from .aggregation import RiskAggregator, aggregate, aggregate_score
from .analyzer import DETECTORS, EntityAnalyzer, FamilyPlan
from .baseline import (
    BaselineCalculator,
    analysis_ranges,
    build_process_window,
    build_team_window,
    build_work_pattern_window,
)
from .burnout import BurnoutDetector
from .checks import (
    CheckDefinition,
    CheckReading,
    CheckThresholds,
    Detector,
    FamilySettings,
    ThresholdSet,
    severity_for_score,
)
from .conflict import ConflictDetector, affected_relationships
from .degradation import DegradationDetector, predict_failure

__all__ = [
    "DETECTORS",
    "BaselineCalculator",
    "BurnoutDetector",
    "CheckDefinition",
    "CheckReading",
    "CheckThresholds",
    "ConflictDetector",
    "DegradationDetector",
    "Detector",
    "EntityAnalyzer",
    "FamilyPlan",
    "FamilySettings",
    "RiskAggregator",
    "ThresholdSet",
    "affected_relationships",
    "aggregate",
    "aggregate_score",
    "analysis_ranges",
    "build_process_window",
    "build_team_window",
    "build_work_pattern_window",
    "predict_failure",
    "severity_for_score",
]
