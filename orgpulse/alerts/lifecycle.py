"""
Alert lifecycle.

    pending -> sent -> acknowledged -> resolved
    pending | sent -> expired

resolved and expired are terminal.
"""

from orgpulse.errors import AlertTransitionError
from orgpulse.models.alerts import AlertStatus

ALLOWED_TRANSITIONS: dict[AlertStatus, frozenset[AlertStatus]] = {
    AlertStatus.PENDING: frozenset(
        {AlertStatus.SENT, AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.EXPIRED}
    ),
    AlertStatus.SENT: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.EXPIRED}),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
    AlertStatus.EXPIRED: frozenset(),
}


def can_transition(current: AlertStatus, requested: AlertStatus) -> bool:
    return AlertStatus(requested) in ALLOWED_TRANSITIONS[AlertStatus(current)]


def check_transition(alert_id: str, current: AlertStatus, requested: AlertStatus) -> bool:
    """
    True when the move changes the status, False for a same-status no-op.

    Raises AlertTransitionError for any move the lifecycle does not allow.
    """
    if current == requested:
        return False
    if not can_transition(current, requested):
        raise AlertTransitionError(alert_id, str(current), str(requested))
    return True
