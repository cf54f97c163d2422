"""
orgpulse — Alerts

Alert creation from insights, lifecycle, subscription matching and dispatch.
"""

from .engine import AlertEngine, SendNotification, format_alert_message, subscription_matches
from .lifecycle import ALLOWED_TRANSITIONS, can_transition, check_transition
from .mapping import (
    INSIGHT_ALERT_SEVERITY,
    INSIGHT_ALERT_TYPE,
    alert_severity_for,
    alert_type_for,
    resolve_recipient,
    verify_tables,
)
from .store import SQLiteAlertStore, SQLiteSubscriptionStore

__all__ = [
    "ALLOWED_TRANSITIONS",
    "INSIGHT_ALERT_SEVERITY",
    "INSIGHT_ALERT_TYPE",
    "AlertEngine",
    "SQLiteAlertStore",
    "SQLiteSubscriptionStore",
    "SendNotification",
    "alert_severity_for",
    "alert_type_for",
    "can_transition",
    "check_transition",
    "format_alert_message",
    "resolve_recipient",
    "subscription_matches",
    "verify_tables",
]
