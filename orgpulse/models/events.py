"""
orgpulse — Event and Metric Window Models

Events are read from the event store; metric windows are derived from them
and never persisted.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from .base import EntityType, json_dumps, to_iso

# Event types consumed by the person and team windows.
PERSON_EVENT_TYPES = ("email_sent", "email_received", "meeting_attended", "message_sent")
TEAM_EVENT_TYPES = ("email_sent", "message_sent", "meeting_attended")
MESSAGE_EVENT_TYPES = ("email_sent", "message_sent")


@dataclass
class Event:
    organization_id: str
    actor_id: str
    timestamp: datetime
    event_type: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def number(self, key: str) -> float | None:
        """Numeric metadata value, or None when missing or not a finite number."""
        value = self.metadata.get(key)
        if isinstance(value, bool):
            return None
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                return None
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            return None
        return float(value)

    def flag(self, key: str) -> bool:
        value = self.metadata.get(key)
        if isinstance(value, str):
            return value.lower() == "true"
        return value is True

    def text(self, key: str) -> str | None:
        value = self.metadata.get(key)
        if value is None:
            return None
        return str(value)

    def to_row(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "actor_id": self.actor_id,
            "timestamp": to_iso(self.timestamp),
            "event_type": self.event_type,
            "process_id": self.text("processId"),
            "metadata": json_dumps(self.metadata),
        }


@dataclass
class Entity:
    """A person, process or team as listed by the entity directory."""

    organization_id: str
    entity_type: EntityType
    entity_id: str
    name: str = ""
    email: str = ""
    department: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.entity_id

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DateRange:
    start: datetime
    end: datetime

    @property
    def days(self) -> float:
        return (self.end - self.start).total_seconds() / 86400

    def to_dict(self) -> dict[str, str]:
        return {"start": to_iso(self.start), "end": to_iso(self.end)}


# =============================================================================
# METRIC WINDOWS
# =============================================================================


@dataclass
class MetricWindow:
    entity_id: str
    start: datetime
    end: datetime
    total_events: int = 0

    @property
    def range(self) -> DateRange:
        return DateRange(self.start, self.end)

    @property
    def days(self) -> float:
        return self.range.days

    @property
    def is_empty(self) -> bool:
        return self.total_events == 0


@dataclass
class WorkPatternWindow(MetricWindow):
    """Per-person communication pattern over one window."""

    after_hours_events: int = 0
    weekend_events: int = 0
    late_night_events: int = 0
    avg_response_time_ms: float = 0.0
    avg_message_length: float = 0.0
    events_by_hour: dict[int, int] = field(default_factory=dict)
    events_by_weekday: dict[int, int] = field(default_factory=dict)
    volume_by_week: dict[str, int] = field(default_factory=dict)

    def _rate(self, count: int) -> float:
        return count / self.total_events if self.total_events > 0 else 0.0

    @property
    def after_hours_rate(self) -> float:
        return self._rate(self.after_hours_events)

    @property
    def weekend_rate(self) -> float:
        return self._rate(self.weekend_events)

    @property
    def late_night_rate(self) -> float:
        return self._rate(self.late_night_events)

    @property
    def avg_weekly_volume(self) -> float:
        weeks = len(self.volume_by_week) or 1
        return sum(self.volume_by_week.values()) / weeks

    def recent_weekly_volume(self, weeks: int = 2) -> float | None:
        """Mean volume of the last `weeks` calendar weeks, None if fewer exist."""
        ordered = sorted(self.volume_by_week.items())
        if len(ordered) < weeks:
            return None
        recent = ordered[-weeks:]
        return sum(count for _, count in recent) / len(recent)


@dataclass
class ProcessWindow(MetricWindow):
    """Case-level statistics for one process. total_events counts process events."""

    case_count: int = 0
    avg_cycle_time: float = 0.0
    median_cycle_time: float = 0.0
    p95_cycle_time: float = 0.0
    cycle_time_variance: float = 0.0
    throughput_per_day: float = 0.0
    error_rate: float = 0.0
    rework_rate: float = 0.0
    step_skip_rate: float = 0.0
    avg_step_duration: dict[str, float] = field(default_factory=dict)
    bottleneck_steps: list[str] = field(default_factory=list)


@dataclass
class CommunicationPair:
    """Both directions of communication between two team members."""

    person1_id: str
    person2_id: str
    person1_email: str = ""
    person2_email: str = ""
    message_count: int = 0
    meeting_count: int = 0
    avg_response_time_1to2: float = 0.0
    avg_response_time_2to1: float = 0.0
    manager_cc_count: int = 0
    direct_count: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return pair_key(self.person1_id, self.person2_id)

    @property
    def total_interactions(self) -> int:
        return self.message_count + self.meeting_count

    @property
    def response_asymmetry(self) -> float | None:
        """Ratio of the slower to the faster direction; None unless both are known."""
        a, b = self.avg_response_time_1to2, self.avg_response_time_2to1
        if a <= 0 or b <= 0:
            return None
        return max(a / b, b / a)

    @property
    def escalation_rate(self) -> float:
        return self.manager_cc_count / max(1, self.total_interactions)

    @property
    def parties(self) -> list[str]:
        return [self.person1_email or self.person1_id, self.person2_email or self.person2_id]


def pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


@dataclass
class TeamWindow(MetricWindow):
    """Communication graph of one team. total_events counts member-to-member interactions."""

    member_count: int = 0
    pairs: list[CommunicationPair] = field(default_factory=list)
    avg_intra_team_messages: float = 0.0
    avg_response_time: float = 0.0
    management_escalation_rate: float = 0.0
    communication_density: float = 0.0

    def pair(self, a: str, b: str) -> CommunicationPair | None:
        wanted = pair_key(a, b)
        for p in self.pairs:
            if p.key == wanted:
                return p
        return None
