"""
orgpulse — Indicator and Risk Assessment Models
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from .base import DetectorFamily, EntityType, Severity, Trend, to_iso
from .events import DateRange

# Risk level vocabulary per family, ordered lowest to highest.
RISK_LEVELS: dict[DetectorFamily, tuple[str, str, str, str]] = {
    DetectorFamily.BURNOUT: ("low", "moderate", "high", "critical"),
    DetectorFamily.DEGRADATION: ("healthy", "warning", "degrading", "critical"),
    DetectorFamily.CONFLICT: ("healthy", "tension", "conflict", "critical"),
}


def level_rank(family: DetectorFamily, level: str) -> int:
    return RISK_LEVELS[family].index(level)


@dataclass
class IndicatorMetadata:
    rate: float | None = None
    relative_change: float | None = None
    current_value: float | None = None
    baseline_value: float | None = None
    involved_parties: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Indicator:
    """One detected deviation with its own score, severity and trend."""

    type: str
    severity: Severity
    score: float
    description: str
    data_point_count: int
    trend: Trend
    metadata: IndicatorMetadata = field(default_factory=IndicatorMetadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": str(self.severity),
            "score": round(self.score, 2),
            "description": self.description,
            "data_point_count": self.data_point_count,
            "trend": str(self.trend),
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class AffectedRelationship:
    """A team member pair whose own signals point at conflict."""

    person1_id: str
    person2_id: str
    person1_email: str
    person2_email: str
    score: float
    indicators: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TimeToFailure:
    value: int
    unit: str  # days | weeks | months
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"{self.value} {self.unit}"


@dataclass
class FailureForecast:
    failure_risk: float
    time_to_failure: TimeToFailure | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "failure_risk": round(self.failure_risk, 4),
            "time_to_failure": self.time_to_failure.to_dict() if self.time_to_failure else None,
        }


@dataclass
class RiskAssessment:
    organization_id: str
    family: DetectorFamily
    entity_type: EntityType
    entity_id: str
    entity_name: str
    overall_score: float
    risk_level: str
    indicators: list[Indicator]
    recommended_actions: list[str]
    analysis_window: DateRange
    baseline_window: DateRange
    confidence: float
    analyzed_at: datetime
    relationships: list[AffectedRelationship] = field(default_factory=list)
    forecast: FailureForecast | None = None

    @property
    def level_rank(self) -> int:
        return level_rank(self.family, self.risk_level)

    @property
    def is_high_risk(self) -> bool:
        """High or critical on the family's scale."""
        return self.level_rank >= 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "family": str(self.family),
            "entity_type": str(self.entity_type),
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "overall_score": round(self.overall_score, 2),
            "risk_level": self.risk_level,
            "indicators": [i.to_dict() for i in self.indicators],
            "recommended_actions": list(self.recommended_actions),
            "analysis_window": self.analysis_window.to_dict(),
            "baseline_window": self.baseline_window.to_dict(),
            "confidence": round(self.confidence, 4),
            "analyzed_at": to_iso(self.analyzed_at),
            "relationships": [r.to_dict() for r in self.relationships],
            "forecast": self.forecast.to_dict() if self.forecast else None,
        }
