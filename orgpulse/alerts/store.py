"""
orgpulse — Alert and Subscription Stores

Status changes are compare-and-set on the observed status, so two writers
racing on the same alert cannot both win.
"""

import sqlite3
from collections.abc import Sequence
from typing import Any

from orgpulse import config
from orgpulse.database import Database
from orgpulse.errors import AlertNotFoundError
from orgpulse.models.alerts import (
    ALERT_SEVERITY_ORDER,
    TERMINAL_STATUSES,
    Alert,
    AlertStatus,
    AlertSubscription,
    NotificationRecord,
)
from orgpulse.models.base import json_dumps, json_loads_safe, now_iso

ALERT_COLUMNS = (
    "id",
    "organization_id",
    "insight_id",
    "type",
    "severity",
    "status",
    "title",
    "message",
    "entity_type",
    "entity_id",
    "entity_name",
    "action_url",
    "metadata",
    "notifications_sent",
    "acknowledged_by",
    "acknowledged_at",
    "created_at",
    "updated_at",
)

SUBSCRIPTION_COLUMNS = (
    "id",
    "organization_id",
    "user_id",
    "name",
    "description",
    "channels",
    "filters",
    "schedule",
    "is_active",
    "created_at",
    "updated_at",
)

_TERMINAL_SQL = ", ".join(f"'{s}'" for s in sorted(TERMINAL_STATUSES))

_SEVERITY_RANK_SQL = "CASE severity " + " ".join(
    f"WHEN '{severity}' THEN {rank}" for severity, rank in ALERT_SEVERITY_ORDER.items()
) + " END"


def _in(values: Sequence[Any]) -> str:
    return ",".join("?" for _ in values)


class SQLiteAlertStore:
    def __init__(self, db: Database):
        self.db = db

    def insert_alert(self, alert: Alert, conn: sqlite3.Connection | None = None) -> None:
        columns = ", ".join(ALERT_COLUMNS)
        values = ", ".join(f":{c}" for c in ALERT_COLUMNS)
        sql = f"INSERT INTO alerts ({columns}) VALUES ({values})"
        if conn is None:
            self.db.execute(sql, alert.to_row())
        else:
            conn.execute(sql, alert.to_row())

    def find_non_terminal_by_insight(
        self, insight_id: str, conn: sqlite3.Connection | None = None
    ) -> Alert | None:
        sql = f"""
            SELECT * FROM alerts
            WHERE insight_id = ? AND status NOT IN ({_TERMINAL_SQL})
            ORDER BY created_at DESC
            LIMIT 1
        """
        if conn is None:
            row = self.db.fetch_one(sql, (insight_id,))
        else:
            row = conn.execute(sql, (insight_id,)).fetchone()
        return Alert.from_row(row) if row else None

    def get_alert(self, alert_id: str) -> Alert | None:
        row = self.db.fetch_one("SELECT * FROM alerts WHERE id = ?", (alert_id,))
        return Alert.from_row(row) if row else None

    def list_pending(self, organization_id: str, limit: int | None = None) -> list[Alert]:
        """Pending alerts, most severe first, then oldest first."""
        rows = self.db.fetch_all(
            f"""
            SELECT * FROM alerts
            WHERE organization_id = ? AND status = ?
            ORDER BY {_SEVERITY_RANK_SQL}, created_at ASC
            LIMIT ?
            """,
            (organization_id, str(AlertStatus.PENDING), limit or config.PENDING_ALERT_BATCH),
        )
        return [Alert.from_row(r) for r in rows]

    def list_alerts(
        self,
        organization_id: str,
        types: Sequence[str] | None = None,
        severities: Sequence[str] | None = None,
        statuses: Sequence[str] | None = None,
        entity_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Alert]:
        sql = "SELECT * FROM alerts WHERE organization_id = ?"
        params: list[Any] = [organization_id]
        for column, values in (("type", types), ("severity", severities), ("status", statuses)):
            if values:
                sql += f" AND {column} IN ({_in(values)})"
                params.extend(str(v) for v in values)
        if entity_id:
            sql += " AND entity_id = ?"
            params.append(entity_id)
        sql += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        return [Alert.from_row(r) for r in self.db.fetch_all(sql, tuple(params))]

    def compare_and_set_status(
        self,
        alert_id: str,
        expected: AlertStatus,
        new: AlertStatus,
        acknowledged_by: str | None = None,
    ) -> bool:
        """Move expected -> new; False when the stored status was no longer `expected`."""
        now = now_iso()
        if new == AlertStatus.ACKNOWLEDGED:
            updated = self.db.execute(
                """
                UPDATE alerts
                SET status = ?, acknowledged_by = ?, acknowledged_at = ?, updated_at = ?
                WHERE id = ? AND status = ?
                """,
                (str(new), acknowledged_by, now, now, alert_id, str(expected)),
            )
        else:
            updated = self.db.execute(
                "UPDATE alerts SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
                (str(new), now, alert_id, str(expected)),
            )
        return updated == 1

    def record_notifications(
        self, alert_id: str, records: Sequence[NotificationRecord], mark_sent: bool = True
    ) -> Alert:
        """
        Append send records to the alert's history in one transaction.

        With mark_sent, a pending alert moves to sent in the same write.
        """
        with self.db.transaction() as conn:
            row = conn.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,)).fetchone()
            if row is None:
                raise AlertNotFoundError(alert_id)
            history = json_loads_safe(row["notifications_sent"], [])
            history.extend(r.to_dict() for r in records)
            status = row["status"]
            if mark_sent and status == AlertStatus.PENDING:
                status = str(AlertStatus.SENT)
            now = now_iso()
            conn.execute(
                "UPDATE alerts SET notifications_sent = ?, status = ?, updated_at = ? WHERE id = ?",
                (json_dumps(history), status, now, alert_id),
            )
            row.update(notifications_sent=json_dumps(history), status=status, updated_at=now)
        return Alert.from_row(row)


class SQLiteSubscriptionStore:
    def __init__(self, db: Database):
        self.db = db

    def insert_subscription(self, subscription: AlertSubscription) -> None:
        columns = ", ".join(SUBSCRIPTION_COLUMNS)
        values = ", ".join(f":{c}" for c in SUBSCRIPTION_COLUMNS)
        self.db.execute(
            f"INSERT INTO alert_subscriptions ({columns}) VALUES ({values})", subscription.to_row()
        )

    def get_subscription(self, subscription_id: str) -> AlertSubscription | None:
        row = self.db.fetch_one("SELECT * FROM alert_subscriptions WHERE id = ?", (subscription_id,))
        return AlertSubscription.from_row(row) if row else None

    def save_subscription(self, subscription: AlertSubscription) -> bool:
        row = subscription.to_row()
        updated = self.db.execute(
            """
            UPDATE alert_subscriptions
            SET user_id = :user_id, name = :name, description = :description,
                channels = :channels, filters = :filters, schedule = :schedule,
                is_active = :is_active, updated_at = :updated_at
            WHERE id = :id
            """,
            row,
        )
        return updated == 1

    def deactivate_subscription(self, subscription_id: str) -> bool:
        updated = self.db.execute(
            "UPDATE alert_subscriptions SET is_active = 0, updated_at = ? WHERE id = ?",
            (now_iso(), subscription_id),
        )
        return updated == 1

    def list_subscriptions(self, organization_id: str, include_inactive: bool = False) -> list[AlertSubscription]:
        sql = "SELECT * FROM alert_subscriptions WHERE organization_id = ?"
        if not include_inactive:
            sql += " AND is_active = 1"
        sql += " ORDER BY created_at"
        return [AlertSubscription.from_row(r) for r in self.db.fetch_all(sql, (organization_id,))]

    def list_active_subscriptions(self, organization_id: str) -> list[AlertSubscription]:
        return self.list_subscriptions(organization_id)
