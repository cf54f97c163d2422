"""
orgpulse — Models

Dataclass records for events, metric windows, indicators, insights, alerts
and runs; pydantic contracts for validated input.
"""

from .alerts import (
    ALERT_SEVERITY_ORDER,
    TERMINAL_STATUSES,
    Alert,
    AlertCreation,
    AlertMetadata,
    AlertSchedule,
    AlertSeverity,
    AlertStatus,
    AlertSubscription,
    AlertType,
    ChannelConfig,
    ChannelType,
    DispatchSummary,
    NotificationRecord,
    NotificationStatus,
    ScheduleType,
    SubscriptionChannel,
    SubscriptionFilter,
)
from .base import (
    FAMILY_ENTITY_TYPE,
    SEVERITY_ORDER,
    DetectorFamily,
    EntityType,
    Severity,
    Trend,
    generate_id,
    now_iso,
    parse_datetime,
    to_iso,
    utcnow,
)
from .contracts import DetectionJobRequest, DetectionOptions, SubscriptionInput
from .events import (
    CommunicationPair,
    DateRange,
    Entity,
    Event,
    MetricWindow,
    ProcessWindow,
    TeamWindow,
    WorkPatternWindow,
)
from .indicators import (
    RISK_LEVELS,
    AffectedRelationship,
    FailureForecast,
    Indicator,
    IndicatorMetadata,
    RiskAssessment,
    TimeToFailure,
    level_rank,
)
from .insights import Insight, InsightCategory, InsightDraft, InsightType, UpsertResult
from .jobs import FamilyResult, ProgressUpdate, RunSummary

__all__ = [
    # Base
    "generate_id",
    "now_iso",
    "to_iso",
    "utcnow",
    "parse_datetime",
    "EntityType",
    "DetectorFamily",
    "FAMILY_ENTITY_TYPE",
    "Severity",
    "SEVERITY_ORDER",
    "Trend",
    # Events
    "Event",
    "Entity",
    "DateRange",
    "MetricWindow",
    "WorkPatternWindow",
    "ProcessWindow",
    "TeamWindow",
    "CommunicationPair",
    # Indicators
    "Indicator",
    "IndicatorMetadata",
    "RiskAssessment",
    "AffectedRelationship",
    "FailureForecast",
    "TimeToFailure",
    "RISK_LEVELS",
    "level_rank",
    # Insights
    "Insight",
    "InsightDraft",
    "InsightType",
    "InsightCategory",
    "UpsertResult",
    # Alerts
    "Alert",
    "AlertCreation",
    "AlertMetadata",
    "AlertType",
    "AlertSeverity",
    "ALERT_SEVERITY_ORDER",
    "AlertStatus",
    "TERMINAL_STATUSES",
    "AlertSubscription",
    "AlertSchedule",
    "ScheduleType",
    "SubscriptionChannel",
    "SubscriptionFilter",
    "ChannelConfig",
    "ChannelType",
    "NotificationRecord",
    "NotificationStatus",
    "DispatchSummary",
    # Jobs
    "FamilyResult",
    "RunSummary",
    "ProgressUpdate",
    # Contracts
    "DetectionOptions",
    "DetectionJobRequest",
    "SubscriptionInput",
]
