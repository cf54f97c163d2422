"""
orgpulse — Alert Engine

Turns insights into alerts, matches alerts against subscriptions and fans
notifications out on a bounded pool with a per-send timeout.

"sent" on an alert means at least one notification was attempted; the
per-send outcome lives in the alert's notification history.
"""

import concurrent.futures
import logging
import sqlite3
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from orgpulse import config
from orgpulse.cancellation import CancellationToken
from orgpulse.database import Database
from orgpulse.errors import AlertNotFoundError, AlertTransitionError, PersistenceError
from orgpulse.models.alerts import (
    Alert,
    AlertCreation,
    AlertMetadata,
    AlertStatus,
    AlertSubscription,
    DispatchSummary,
    NotificationRecord,
    NotificationStatus,
    SubscriptionChannel,
)
from orgpulse.models.base import now_iso
from orgpulse.models.insights import Insight
from orgpulse.observability import metrics, submit_with_context

from .lifecycle import check_transition
from .mapping import alert_severity_for, alert_type_for, resolve_recipient
from .store import SQLiteAlertStore, SQLiteSubscriptionStore

logger = logging.getLogger(__name__)

SendNotification = Callable[[Alert, AlertSubscription, SubscriptionChannel], NotificationRecord]

# Concurrent status writers retry this many times before giving up.
MAX_STATUS_ATTEMPTS = 3


def format_alert_message(insight: Insight) -> str:
    parts = [insight.description]
    if insight.recommended_actions:
        parts.append("\nRecommended actions:")
        parts.extend(f"{i}. {action}" for i, action in enumerate(insight.recommended_actions, 1))
    return "\n".join(parts)


def action_url_for(insight: Insight, base_url: str | None = None) -> str:
    base = (base_url or config.APP_URL).rstrip("/")
    return f"{base}/insights/{insight.id}"


def subscription_matches(subscription: AlertSubscription, alert: Alert) -> bool:
    """Every present filter must hold; empty lists count as absent."""
    f = subscription.filters
    if f.types and str(alert.type) not in f.types:
        return False
    if f.severities and str(alert.severity) not in f.severities:
        return False
    if f.entity_types and str(alert.entity_type) not in f.entity_types:
        return False
    if f.categories and alert.metadata.insight_category not in f.categories:
        return False
    if f.min_score is not None:
        score = alert.metadata.insight_score
        if isinstance(score, int | float) and score < f.min_score:
            return False
    return True


class AlertEngine:
    def __init__(
        self,
        db: Database,
        alert_store: SQLiteAlertStore | None = None,
        subscription_store: SQLiteSubscriptionStore | None = None,
        max_workers: int | None = None,
        send_timeout: float | None = None,
        app_url: str | None = None,
    ):
        self.db = db
        self.alerts = alert_store or SQLiteAlertStore(db)
        self.subscriptions = subscription_store or SQLiteSubscriptionStore(db)
        self.max_workers = max_workers or config.NOTIFY_MAX_WORKERS
        self.send_timeout = send_timeout if send_timeout is not None else config.NOTIFY_TIMEOUT_SECONDS
        self.app_url = app_url

    # =========================================================================
    # Creation
    # =========================================================================

    def build_alert(self, insight: Insight) -> Alert:
        return Alert(
            organization_id=insight.organization_id,
            insight_id=insight.id,
            type=alert_type_for(insight.type),
            severity=alert_severity_for(insight.severity),
            title=insight.title,
            message=format_alert_message(insight),
            entity_type=insight.entity_type,
            entity_id=insight.entity_id,
            entity_name=insight.metadata.get("entity_name"),
            action_url=action_url_for(insight, self.app_url),
            metadata=AlertMetadata(
                insight_score=insight.score,
                insight_category=str(insight.category),
                recommended_actions=list(insight.recommended_actions),
            ),
        )

    def create_from_insight(self, insight: Insight) -> AlertCreation:
        """
        Alert for the insight, reusing the live one if it exists.

        A uniqueness violation means another writer got there first; its
        alert is returned instead.
        """
        try:
            with self.db.transaction() as conn:
                existing = self.alerts.find_non_terminal_by_insight(insight.id, conn=conn)
                if existing is not None:
                    return AlertCreation(alert=existing, created=False)
                alert = self.build_alert(insight)
                self.alerts.insert_alert(alert, conn=conn)
        except sqlite3.IntegrityError as e:
            existing = self.alerts.find_non_terminal_by_insight(insight.id)
            if existing is None:
                raise PersistenceError(f"Alert insert for insight {insight.id} failed: {e}") from e
            return AlertCreation(alert=existing, created=False)

        metrics.alerts_created.inc()
        logger.info("Created %s alert %s for insight %s", alert.severity, alert.id, insight.id)
        return AlertCreation(alert=alert, created=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def get_alert(self, alert_id: str) -> Alert:
        alert = self.alerts.get_alert(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def update_status(self, alert_id: str, status: AlertStatus, acknowledged_by: str | None = None) -> Alert:
        """
        Move an alert to `status`. Same status is a no-op; disallowed moves
        raise AlertTransitionError.
        """
        status = AlertStatus(status)
        for _ in range(MAX_STATUS_ATTEMPTS):
            alert = self.get_alert(alert_id)
            if not check_transition(alert_id, alert.status, status):
                return alert
            if self.alerts.compare_and_set_status(alert_id, alert.status, status, acknowledged_by):
                logger.info("Alert %s: %s -> %s", alert_id, alert.status, status)
                return self.get_alert(alert_id)
            logger.debug("Alert %s changed underneath us, retrying", alert_id)
        current = self.get_alert(alert_id)
        raise AlertTransitionError(alert_id, str(current.status), str(status))

    def acknowledge(self, alert_id: str, user_id: str) -> Alert:
        return self.update_status(alert_id, AlertStatus.ACKNOWLEDGED, acknowledged_by=user_id)

    def resolve(self, alert_id: str) -> Alert:
        return self.update_status(alert_id, AlertStatus.RESOLVED)

    def expire(self, alert_id: str) -> Alert:
        return self.update_status(alert_id, AlertStatus.EXPIRED)

    def list_alerts(self, organization_id: str, **filters: Any) -> list[Alert]:
        return self.alerts.list_alerts(organization_id, **filters)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def create_subscription(self, subscription: AlertSubscription) -> AlertSubscription:
        self.subscriptions.insert_subscription(subscription)
        logger.info("Created subscription %s for %s", subscription.id, subscription.organization_id)
        return subscription

    def update_subscription(self, subscription_id: str, **changes: Any) -> AlertSubscription | None:
        subscription = self.subscriptions.get_subscription(subscription_id)
        if subscription is None:
            return None
        for key, value in changes.items():
            if not hasattr(subscription, key) or key in ("id", "organization_id", "created_at"):
                raise ValueError(f"Subscription field {key!r} cannot be updated")
            setattr(subscription, key, value)
        subscription.updated_at = now_iso()
        self.subscriptions.save_subscription(subscription)
        return subscription

    def delete_subscription(self, subscription_id: str) -> bool:
        """Soft delete: the subscription stops matching but its row stays."""
        return self.subscriptions.deactivate_subscription(subscription_id)

    def list_subscriptions(self, organization_id: str, include_inactive: bool = False) -> list[AlertSubscription]:
        return self.subscriptions.list_subscriptions(organization_id, include_inactive)

    def get_matching_subscriptions(self, alert: Alert) -> list[AlertSubscription]:
        return [
            s
            for s in self.subscriptions.list_active_subscriptions(alert.organization_id)
            if subscription_matches(s, alert)
        ]

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _failed_record(self, subscription: AlertSubscription, channel: SubscriptionChannel, error: str):
        return NotificationRecord(
            channel=channel.type,
            recipient=resolve_recipient(channel, subscription),
            status=NotificationStatus.FAILED,
            error=error,
        )

    @staticmethod
    def _timed_send(send: SendNotification, alert, subscription, channel) -> NotificationRecord:
        started = time.perf_counter()
        try:
            return send(alert, subscription, channel)
        finally:
            metrics.notification_duration.observe(time.perf_counter() - started)

    def _dispatch_alert(
        self,
        alert: Alert,
        send_notification: SendNotification,
        summary: DispatchSummary,
        token: CancellationToken | None,
    ) -> list[NotificationRecord]:
        jobs: list[tuple[AlertSubscription, SubscriptionChannel]] = []
        for subscription in self.get_matching_subscriptions(alert):
            if subscription.is_digest:
                summary.skipped_digest += 1
                continue
            jobs.extend((subscription, channel) for channel in subscription.channels)
        if not jobs:
            return []

        # One pool per alert: a send stuck past its timeout keeps its worker,
        # and must not take that worker away from the next alert's channels.
        workers = min(self.max_workers, len(jobs))
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify")
        try:
            started = time.monotonic()
            futures = [
                submit_with_context(pool, self._timed_send, send_notification, alert, sub, channel)
                for sub, channel in jobs
            ]
            records: list[NotificationRecord] = []
            for index, (future, (subscription, channel)) in enumerate(zip(futures, jobs, strict=True)):
                # FIFO pool: send i starts no later than wave (i // workers) finishing.
                wave = index // workers + 1
                wait_for = max(0.0, started + wave * self.send_timeout - time.monotonic())
                if token is not None:
                    wait_for = token.remaining(cap=wait_for)
                try:
                    record = future.result(timeout=wait_for)
                except concurrent.futures.TimeoutError:
                    future.cancel()
                    record = self._failed_record(
                        subscription, channel, f"Timed out after {self.send_timeout:g}s"
                    )
                except Exception as e:
                    logger.warning("Send to %s for alert %s failed: %s", channel.type, alert.id, e)
                    record = self._failed_record(subscription, channel, str(e) or type(e).__name__)

                if record.succeeded:
                    summary.sent += 1
                    metrics.notifications_sent.inc()
                else:
                    summary.failed += 1
                    metrics.notifications_failed.inc()
                records.append(record)
            return records
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def process_pending_alerts(
        self,
        organization_id: str,
        send_notification: SendNotification,
        token: CancellationToken | None = None,
    ) -> DispatchSummary:
        """Send every pending alert of the organization to its matching subscriptions."""
        summary = DispatchSummary(organization_id=organization_id)
        for alert in self.alerts.list_pending(organization_id):
            if token is not None and token.cancelled:
                summary.cancelled = True
                logger.info("Dispatch for %s cancelled after %d alerts", organization_id, summary.processed)
                break
            summary.processed += 1
            records = self._dispatch_alert(alert, send_notification, summary, token)
            if records:
                self.alerts.record_notifications(alert.id, records, mark_sent=True)

        logger.info(
            "Dispatch for %s: processed=%d sent=%d failed=%d skipped_digest=%d",
            organization_id,
            summary.processed,
            summary.sent,
            summary.failed,
            summary.skipped_digest,
        )
        return summary
