"""
Observability: structured logging, run ids, metrics.

Usage:
    from orgpulse.observability import RunContext, insights_created

    logger = logging.getLogger(__name__)
    with RunContext(organization_id="org-1"):
        logger.info("Detection started")
        insights_created.inc()
"""

from .context import (
    RunContext,
    generate_run_id,
    get_organization_id,
    get_run_id,
    submit_with_context,
)
from .logging import HumanFormatter, JSONFormatter, configure_logging
from .metrics import (
    REGISTRY,
    Counter,
    Histogram,
    MetricsRegistry,
    alerts_created,
    detection_cancelled,
    detection_duration,
    detection_runs,
    detector_failures,
    entities_analyzed,
    get_registry,
    indicators_emitted,
    insights_created,
    insights_updated,
    notification_duration,
    notifications_failed,
    notifications_sent,
    persistence_failures,
    read_failures,
)

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    # Context
    "RunContext",
    "generate_run_id",
    "get_run_id",
    "get_organization_id",
    "submit_with_context",
    # Metrics
    "REGISTRY",
    "MetricsRegistry",
    "get_registry",
    "Counter",
    "Histogram",
    "detection_runs",
    "detection_cancelled",
    "detector_failures",
    "entities_analyzed",
    "indicators_emitted",
    "insights_created",
    "insights_updated",
    "persistence_failures",
    "read_failures",
    "alerts_created",
    "notifications_sent",
    "notifications_failed",
    "detection_duration",
    "notification_duration",
]
