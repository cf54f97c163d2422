"""
orgpulse — Insight Models
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .base import EntityType, Severity, generate_id, json_dumps, json_loads_safe, now_iso


class InsightType(StrEnum):
    BURNOUT_RISK = "burnout_risk"
    PROCESS_DEGRADATION = "process_degradation"
    TEAM_CONFLICT = "team_conflict"
    BUS_FACTOR_RISK = "bus_factor_risk"
    DATA_QUALITY = "data_quality"
    COMPLIANCE_GAP = "compliance_gap"
    OPPORTUNITY = "opportunity"
    ANOMALY = "anomaly"


class InsightCategory(StrEnum):
    PEOPLE = "people"
    PROCESS = "process"
    TEAM = "team"
    DATA = "data"
    COMPLIANCE = "compliance"
    GENERAL = "general"


@dataclass
class InsightDraft:
    """An insight as produced by the processor, before it has an id."""

    organization_id: str
    type: InsightType
    category: InsightCategory
    severity: Severity
    title: str
    description: str
    entity_type: EntityType
    entity_id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)
    recommended_actions: list[str] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.organization_id, str(self.type), self.entity_id)


@dataclass
class Insight:
    """Durable, deduplicated record of a significant finding."""

    organization_id: str
    type: InsightType
    category: InsightCategory
    severity: Severity
    title: str
    description: str
    entity_type: EntityType
    entity_id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)
    recommended_actions: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: generate_id("ins"))
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @classmethod
    def from_draft(cls, draft: InsightDraft, now: str) -> "Insight":
        return cls(
            organization_id=draft.organization_id,
            type=draft.type,
            category=draft.category,
            severity=draft.severity,
            title=draft.title,
            description=draft.description,
            entity_type=draft.entity_type,
            entity_id=draft.entity_id,
            score=draft.score,
            metadata=dict(draft.metadata),
            recommended_actions=list(draft.recommended_actions),
            created_at=now,
            updated_at=now,
        )

    def apply(self, draft: InsightDraft, now: str) -> None:
        """Refresh the mutable fields from a newer detection of the same finding."""
        self.severity = draft.severity
        self.title = draft.title
        self.description = draft.description
        self.score = draft.score
        self.metadata = dict(draft.metadata)
        self.recommended_actions = list(draft.recommended_actions)
        self.updated_at = now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "type": str(self.type),
            "category": str(self.category),
            "severity": str(self.severity),
            "title": self.title,
            "description": self.description,
            "entity_type": str(self.entity_type),
            "entity_id": self.entity_id,
            "score": self.score,
            "metadata": self.metadata,
            "recommended_actions": self.recommended_actions,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_row(self) -> dict[str, Any]:
        row = self.to_dict()
        row["metadata"] = json_dumps(self.metadata)
        row["recommended_actions"] = json_dumps(self.recommended_actions)
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Insight":
        return cls(
            id=row["id"],
            organization_id=row["organization_id"],
            type=InsightType(row["type"]),
            category=InsightCategory(row["category"]),
            severity=Severity(row["severity"]),
            title=row["title"],
            description=row["description"],
            entity_type=EntityType(row["entity_type"]),
            entity_id=row["entity_id"],
            score=float(row["score"]),
            metadata=json_loads_safe(row["metadata"], {}),
            recommended_actions=json_loads_safe(row["recommended_actions"], []),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class UpsertResult:
    insight: Insight
    created: bool
