"""
Insight -> alert lookup tables.

Both tables must cover every member of their source enum; a gap is a
configuration error raised at import.
"""

from orgpulse.errors import ConfigurationError
from orgpulse.models.alerts import AlertSeverity, AlertSubscription, AlertType, ChannelType, SubscriptionChannel
from orgpulse.models.base import Severity
from orgpulse.models.insights import InsightType

INSIGHT_ALERT_TYPE: dict[InsightType, AlertType] = {
    InsightType.BURNOUT_RISK: AlertType.BURNOUT_WARNING,
    InsightType.PROCESS_DEGRADATION: AlertType.PROCESS_DEGRADATION,
    InsightType.TEAM_CONFLICT: AlertType.TEAM_CONFLICT,
    InsightType.BUS_FACTOR_RISK: AlertType.BUS_FACTOR_RISK,
    InsightType.DATA_QUALITY: AlertType.DATA_QUALITY_ISSUE,
    InsightType.COMPLIANCE_GAP: AlertType.COMPLIANCE_ALERT,
    InsightType.OPPORTUNITY: AlertType.SYSTEM_ALERT,
    InsightType.ANOMALY: AlertType.SYSTEM_ALERT,
}

INSIGHT_ALERT_SEVERITY: dict[Severity, AlertSeverity] = {
    Severity.CRITICAL: AlertSeverity.CRITICAL,
    Severity.HIGH: AlertSeverity.ERROR,
    Severity.MEDIUM: AlertSeverity.WARNING,
    Severity.LOW: AlertSeverity.INFO,
}


def verify_tables() -> None:
    missing_types = set(InsightType) - set(INSIGHT_ALERT_TYPE)
    if missing_types:
        raise ConfigurationError(f"No alert type for insight types: {sorted(missing_types)}")
    missing_severities = set(Severity) - set(INSIGHT_ALERT_SEVERITY)
    if missing_severities:
        raise ConfigurationError(f"No alert severity for: {sorted(missing_severities)}")


verify_tables()


def alert_type_for(insight_type: InsightType) -> AlertType:
    return INSIGHT_ALERT_TYPE[InsightType(insight_type)]


def alert_severity_for(severity: Severity) -> AlertSeverity:
    return INSIGHT_ALERT_SEVERITY[Severity(severity)]


def resolve_recipient(channel: SubscriptionChannel, subscription: AlertSubscription | None = None) -> str:
    """Human-readable delivery target of a channel, 'unknown' when unset."""
    config = channel.config
    if channel.type == ChannelType.EMAIL:
        target = config.email
    elif channel.type == ChannelType.SLACK:
        target = config.channel or config.webhook_url
    elif channel.type == ChannelType.TEAMS:
        target = config.teams_webhook_url
    elif channel.type == ChannelType.WEBHOOK:
        target = config.url
    elif channel.type == ChannelType.IN_APP:
        target = subscription.user_id if subscription is not None else None
    else:
        target = None
    return target or "unknown"
