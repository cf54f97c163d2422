"""
Input contracts validated at the edges (CLI, job queue payloads).

Pydantic models; everything past these boundaries uses the dataclasses in
the sibling modules.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .alerts import (
    AlertSchedule,
    AlertSubscription,
    ChannelConfig,
    ChannelType,
    ScheduleType,
    SubscriptionChannel,
    SubscriptionFilter,
)
from .base import DetectorFamily

Sensitivity = Literal["low", "medium", "high"]
Scope = Literal["burnout", "degradation", "conflict", "all"]


class DetectionOptions(BaseModel):
    """Per-run overrides. None means the family's configured default."""

    model_config = ConfigDict(extra="forbid")

    lookback_days: int | None = Field(default=None, ge=1, le=365)
    baseline_days: int | None = Field(default=None, ge=1, le=730)
    min_data_points: int | None = Field(default=None, ge=1)
    sensitivity: Sensitivity = "medium"
    business_hours_start: int | None = Field(default=None, ge=0, le=23)
    business_hours_end: int | None = Field(default=None, ge=1, le=24)
    entity_ids: list[str] | None = None

    @model_validator(mode="after")
    def _business_hours_order(self) -> "DetectionOptions":
        start, end = self.business_hours_start, self.business_hours_end
        if start is not None and end is not None and start >= end:
            raise ValueError("business_hours_start must be before business_hours_end")
        return self


class DetectionJobRequest(BaseModel):
    """One organization's detection job as queued."""

    model_config = ConfigDict(extra="forbid")

    organization_id: str = Field(min_length=1)
    scope: Scope = "all"
    options: DetectionOptions = Field(default_factory=DetectionOptions)
    analysis_job_id: str | None = None

    @property
    def families(self) -> list[DetectorFamily]:
        if self.scope == "all":
            return list(DetectorFamily)
        return [DetectorFamily(self.scope)]


class ChannelInput(BaseModel):
    type: ChannelType
    email: str | None = None
    webhook_url: str | None = None
    channel: str | None = None
    teams_webhook_url: str | None = None
    url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _has_target(self) -> "ChannelInput":
        required = {
            ChannelType.EMAIL: self.email,
            ChannelType.SLACK: self.webhook_url,
            ChannelType.TEAMS: self.teams_webhook_url,
            ChannelType.WEBHOOK: self.url,
        }
        if self.type in required and not required[self.type]:
            raise ValueError(f"{self.type} channel needs a delivery target")
        return self

    def to_channel(self) -> SubscriptionChannel:
        return SubscriptionChannel(
            type=self.type,
            config=ChannelConfig(
                email=self.email,
                webhook_url=self.webhook_url,
                channel=self.channel,
                teams_webhook_url=self.teams_webhook_url,
                url=self.url,
                headers=dict(self.headers),
            ),
        )


class SubscriptionInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    organization_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    user_id: str | None = None
    description: str | None = None
    channels: list[ChannelInput] = Field(min_length=1)
    types: list[str] | None = None
    severities: list[Literal["info", "warning", "error", "critical"]] | None = None
    entity_types: list[Literal["person", "process", "team"]] | None = None
    categories: list[str] | None = None
    min_score: float | None = Field(default=None, ge=0, le=100)
    schedule: ScheduleType = ScheduleType.IMMEDIATE
    digest_frequency: Literal["hourly", "daily", "weekly"] | None = None
    digest_time: str | None = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    digest_days: list[int] | None = None
    timezone: str | None = None

    @field_validator("digest_days")
    @classmethod
    def _weekdays(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and any(d < 0 or d > 6 for d in value):
            raise ValueError("digest_days must be between 0 and 6")
        return value

    def to_subscription(self) -> AlertSubscription:
        return AlertSubscription(
            organization_id=self.organization_id,
            name=self.name,
            user_id=self.user_id,
            description=self.description,
            channels=[c.to_channel() for c in self.channels],
            filters=SubscriptionFilter(
                types=self.types,
                severities=list(self.severities) if self.severities is not None else None,
                entity_types=list(self.entity_types) if self.entity_types is not None else None,
                categories=self.categories,
                min_score=self.min_score,
            ),
            schedule=AlertSchedule(
                type=self.schedule,
                digest_frequency=self.digest_frequency,
                digest_time=self.digest_time,
                digest_days=self.digest_days,
                timezone=self.timezone,
            ),
        )
