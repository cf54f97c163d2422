"""
orgpulse — Detection Run Models
"""

from dataclasses import dataclass, field
from typing import Any

from .base import now_iso


@dataclass
class FamilyResult:
    analyzed: int = 0
    high_risk_count: int = 0
    skipped: int = 0  # entities below the minimum-data guard
    insights_written: int = 0
    alerts_generated: int = 0
    persistence_failures: int = 0
    read_failures: int = 0  # entities whose event query failed
    cancelled: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "analyzed": self.analyzed,
            "high_risk_count": self.high_risk_count,
            "skipped": self.skipped,
            "insights_written": self.insights_written,
            "alerts_generated": self.alerts_generated,
            "persistence_failures": self.persistence_failures,
            "read_failures": self.read_failures,
        }
        if self.cancelled:
            data["cancelled"] = True
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class RunSummary:
    organization_id: str
    run_id: str
    families: dict[str, FamilyResult] = field(default_factory=dict)
    failed_families: list[str] = field(default_factory=list)
    cancelled: bool = False
    duration_ms: int = 0
    completed_at: str | None = None

    @property
    def analyzed(self) -> int:
        return sum(r.analyzed for r in self.families.values())

    @property
    def high_risk_count(self) -> int:
        return sum(r.high_risk_count for r in self.families.values())

    @property
    def insights_written(self) -> int:
        return sum(r.insights_written for r in self.families.values())

    @property
    def alerts_generated(self) -> int:
        return sum(r.alerts_generated for r in self.families.values())

    @property
    def persistence_failures(self) -> int:
        return sum(r.persistence_failures for r in self.families.values())

    @property
    def read_failures(self) -> int:
        return sum(r.read_failures for r in self.families.values())

    def complete(self, duration_ms: int) -> None:
        self.duration_ms = duration_ms
        self.completed_at = now_iso()

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "run_id": self.run_id,
            "analyzed": self.analyzed,
            "high_risk_count": self.high_risk_count,
            "alerts_generated": self.alerts_generated,
            "insights_written": self.insights_written,
            "persistence_failures": self.persistence_failures,
            "read_failures": self.read_failures,
            "families": {name: r.to_dict() for name, r in self.families.items()},
            "failed_families": list(self.failed_families),
            "cancelled": self.cancelled,
            "duration_ms": self.duration_ms,
            "completed_at": self.completed_at,
        }


@dataclass
class ProgressUpdate:
    current: int
    total: int
    stage: str
    message: str

    @property
    def percent(self) -> int:
        return int(self.current * 100 / self.total) if self.total else 100
