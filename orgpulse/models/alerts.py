"""
orgpulse — Alert, Subscription and Notification Models

Subscription channel configs and filters are explicit dataclasses rather
than free-form dicts; they round-trip through JSON columns.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .base import EntityType, generate_id, json_dumps, json_loads_safe, now_iso


class AlertType(StrEnum):
    BURNOUT_WARNING = "burnout_warning"
    PROCESS_DEGRADATION = "process_degradation"
    TEAM_CONFLICT = "team_conflict"
    BUS_FACTOR_RISK = "bus_factor_risk"
    DATA_QUALITY_ISSUE = "data_quality_issue"
    COMPLIANCE_ALERT = "compliance_alert"
    SYSTEM_ALERT = "system_alert"


class AlertSeverity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Dispatch order: most severe first.
ALERT_SEVERITY_ORDER: dict[AlertSeverity, int] = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.ERROR: 1,
    AlertSeverity.WARNING: 2,
    AlertSeverity.INFO: 3,
}


class AlertStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"  # at least one notification was attempted, not necessarily delivered
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({AlertStatus.RESOLVED, AlertStatus.EXPIRED})


class ChannelType(StrEnum):
    EMAIL = "email"
    SLACK = "slack"
    TEAMS = "teams"
    WEBHOOK = "webhook"
    IN_APP = "in_app"


class NotificationStatus(StrEnum):
    SENT = "sent"
    FAILED = "failed"
    DELIVERED = "delivered"


class ScheduleType(StrEnum):
    IMMEDIATE = "immediate"
    DIGEST = "digest"
    SCHEDULED = "scheduled"


# =============================================================================
# NOTIFICATIONS
# =============================================================================


@dataclass
class NotificationRecord:
    """Append-only record of one send attempt."""

    channel: ChannelType
    recipient: str
    status: NotificationStatus
    sent_at: str = field(default_factory=now_iso)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status in (NotificationStatus.SENT, NotificationStatus.DELIVERED)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "channel": str(self.channel),
            "recipient": self.recipient,
            "sent_at": self.sent_at,
            "status": str(self.status),
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationRecord":
        return cls(
            channel=ChannelType(data["channel"]),
            recipient=data.get("recipient", "unknown"),
            status=NotificationStatus(data["status"]),
            sent_at=data.get("sent_at") or now_iso(),
            error=data.get("error"),
        )


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================


@dataclass
class ChannelConfig:
    email: str | None = None
    webhook_url: str | None = None  # slack
    channel: str | None = None  # slack
    teams_webhook_url: str | None = None
    url: str | None = None  # generic webhook
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "email": self.email,
            "webhook_url": self.webhook_url,
            "channel": self.channel,
            "teams_webhook_url": self.teams_webhook_url,
            "url": self.url,
        }
        data = {k: v for k, v in data.items() if v is not None}
        if self.headers:
            data["headers"] = dict(self.headers)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ChannelConfig":
        data = data or {}
        return cls(
            email=data.get("email"),
            webhook_url=data.get("webhook_url"),
            channel=data.get("channel"),
            teams_webhook_url=data.get("teams_webhook_url"),
            url=data.get("url"),
            headers=dict(data.get("headers") or {}),
        )


@dataclass
class SubscriptionChannel:
    type: ChannelType
    config: ChannelConfig = field(default_factory=ChannelConfig)

    def to_dict(self) -> dict[str, Any]:
        return {"type": str(self.type), "config": self.config.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubscriptionChannel":
        return cls(type=ChannelType(data["type"]), config=ChannelConfig.from_dict(data.get("config")))


@dataclass
class SubscriptionFilter:
    """Every present (non-None) field must match; an empty filter matches everything."""

    types: list[str] | None = None
    severities: list[str] | None = None
    entity_types: list[str] | None = None
    categories: list[str] | None = None
    min_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "types": self.types,
            "severities": self.severities,
            "entity_types": self.entity_types,
            "categories": self.categories,
            "min_score": self.min_score,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SubscriptionFilter":
        data = data or {}
        return cls(
            types=data.get("types"),
            severities=data.get("severities"),
            entity_types=data.get("entity_types"),
            categories=data.get("categories"),
            min_score=data.get("min_score"),
        )


@dataclass
class AlertSchedule:
    type: ScheduleType = ScheduleType.IMMEDIATE
    digest_frequency: str | None = None  # hourly | daily | weekly
    digest_time: str | None = None  # HH:MM
    digest_days: list[int] | None = None  # 0-6
    timezone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "type": str(self.type),
            "digest_frequency": self.digest_frequency,
            "digest_time": self.digest_time,
            "digest_days": self.digest_days,
            "timezone": self.timezone,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AlertSchedule":
        data = data or {}
        return cls(
            type=ScheduleType(data.get("type", ScheduleType.IMMEDIATE)),
            digest_frequency=data.get("digest_frequency"),
            digest_time=data.get("digest_time"),
            digest_days=data.get("digest_days"),
            timezone=data.get("timezone"),
        )


@dataclass
class AlertSubscription:
    organization_id: str
    name: str
    channels: list[SubscriptionChannel] = field(default_factory=list)
    filters: SubscriptionFilter = field(default_factory=SubscriptionFilter)
    schedule: AlertSchedule = field(default_factory=AlertSchedule)
    user_id: str | None = None
    description: str | None = None
    is_active: bool = True
    id: str = field(default_factory=lambda: generate_id("sub"))
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @property
    def is_digest(self) -> bool:
        return self.schedule.type == ScheduleType.DIGEST

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "channels": [c.to_dict() for c in self.channels],
            "filters": self.filters.to_dict(),
            "schedule": self.schedule.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_row(self) -> dict[str, Any]:
        row = self.to_dict()
        row["is_active"] = 1 if self.is_active else 0
        row["channels"] = json_dumps(row["channels"])
        row["filters"] = json_dumps(row["filters"])
        row["schedule"] = json_dumps(row["schedule"])
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AlertSubscription":
        return cls(
            id=row["id"],
            organization_id=row["organization_id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            is_active=bool(row["is_active"]),
            channels=[SubscriptionChannel.from_dict(c) for c in json_loads_safe(row["channels"], [])],
            filters=SubscriptionFilter.from_dict(json_loads_safe(row["filters"], {})),
            schedule=AlertSchedule.from_dict(json_loads_safe(row["schedule"], {})),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


# =============================================================================
# ALERTS
# =============================================================================


@dataclass
class AlertMetadata:
    insight_score: float
    insight_category: str
    recommended_actions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "insight_score": self.insight_score,
            "insight_category": self.insight_category,
            "recommended_actions": list(self.recommended_actions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AlertMetadata":
        data = data or {}
        return cls(
            insight_score=float(data.get("insight_score", 0.0)),
            insight_category=data.get("insight_category", "general"),
            recommended_actions=list(data.get("recommended_actions") or []),
        )


@dataclass
class Alert:
    organization_id: str
    insight_id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    entity_type: EntityType
    entity_id: str
    metadata: AlertMetadata
    status: AlertStatus = AlertStatus.PENDING
    entity_name: str | None = None
    action_url: str | None = None
    notifications_sent: list[NotificationRecord] = field(default_factory=list)
    acknowledged_by: str | None = None
    acknowledged_at: str | None = None
    id: str = field(default_factory=lambda: generate_id("alr"))
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "insight_id": self.insight_id,
            "type": str(self.type),
            "severity": str(self.severity),
            "status": str(self.status),
            "title": self.title,
            "message": self.message,
            "entity_type": str(self.entity_type),
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "action_url": self.action_url,
            "metadata": self.metadata.to_dict(),
            "notifications_sent": [n.to_dict() for n in self.notifications_sent],
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": self.acknowledged_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_row(self) -> dict[str, Any]:
        row = self.to_dict()
        row["metadata"] = json_dumps(row["metadata"])
        row["notifications_sent"] = json_dumps(row["notifications_sent"])
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Alert":
        return cls(
            id=row["id"],
            organization_id=row["organization_id"],
            insight_id=row["insight_id"],
            type=AlertType(row["type"]),
            severity=AlertSeverity(row["severity"]),
            status=AlertStatus(row["status"]),
            title=row["title"],
            message=row["message"],
            entity_type=EntityType(row["entity_type"]),
            entity_id=row["entity_id"],
            entity_name=row["entity_name"],
            action_url=row["action_url"],
            metadata=AlertMetadata.from_dict(json_loads_safe(row["metadata"], {})),
            notifications_sent=[
                NotificationRecord.from_dict(n) for n in json_loads_safe(row["notifications_sent"], [])
            ],
            acknowledged_by=row["acknowledged_by"],
            acknowledged_at=row["acknowledged_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class AlertCreation:
    alert: Alert
    created: bool


@dataclass
class DispatchSummary:
    organization_id: str
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped_digest: int = 0
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "processed": self.processed,
            "sent": self.sent,
            "failed": self.failed,
            "skipped_digest": self.skipped_digest,
            "cancelled": self.cancelled,
        }
