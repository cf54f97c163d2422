"""
Exception taxonomy for orgpulse.

Insufficient data is never an exception: detectors and the analyzer return
None/empty results for it. Everything below is a real failure that a caller
may catch per entity, per family or per send.
"""


class OrgPulseError(Exception):
    """Base class for all orgpulse errors."""


class ConfigurationError(OrgPulseError):
    """Invalid or incomplete configuration (thresholds, mapping tables, channels)."""


class StorageError(OrgPulseError):
    """A storage call failed. Wraps the underlying sqlite3.Error."""


class PersistenceError(StorageError):
    """Writing an insight or alert failed."""


class AlertNotFoundError(OrgPulseError):
    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


class AlertTransitionError(OrgPulseError):
    """An alert status change that the lifecycle does not allow."""

    def __init__(self, alert_id: str, current: str, requested: str):
        super().__init__(f"Alert {alert_id}: cannot move from {current} to {requested}")
        self.alert_id = alert_id
        self.current = current
        self.requested = requested


class ChannelDeliveryError(OrgPulseError):
    """A notification channel rejected or failed to deliver a message."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class OperationCancelled(OrgPulseError):
    """The cancellation token fired or its deadline passed."""
