"""
orgpulse — Insight Store

SQLite persistence for insights. Methods take an optional open connection so
the upsert service can run find + write inside one transaction.
"""

import sqlite3
from datetime import datetime, timedelta
from typing import Any, Protocol

from orgpulse.database import Database
from orgpulse.errors import PersistenceError
from orgpulse.models.base import to_iso, utcnow
from orgpulse.models.insights import Insight

INSIGHT_COLUMNS = (
    "id",
    "organization_id",
    "type",
    "category",
    "severity",
    "title",
    "description",
    "entity_type",
    "entity_id",
    "score",
    "metadata",
    "recommended_actions",
    "created_at",
    "updated_at",
)


class InsightStore(Protocol):
    def find_recent_insight(
        self,
        organization_id: str,
        insight_type: str,
        entity_id: str,
        within_days: int,
        now: datetime | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> Insight | None: ...

    def insert_insight(self, insight: Insight, conn: sqlite3.Connection | None = None) -> None: ...

    def update_insight(self, insight: Insight, conn: sqlite3.Connection | None = None) -> None: ...

    def get_insight(self, insight_id: str) -> Insight | None: ...


class SQLiteInsightStore:
    def __init__(self, db: Database):
        self.db = db

    def _run(self, conn: sqlite3.Connection | None, sql: str, params: tuple | dict) -> int:
        if conn is None:
            return self.db.execute(sql, params)
        return conn.execute(sql, params).rowcount

    def find_recent_insight(
        self,
        organization_id: str,
        insight_type: str,
        entity_id: str,
        within_days: int,
        now: datetime | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> Insight | None:
        """Newest insight for the key created within the last `within_days` days."""
        cutoff = to_iso((now or utcnow()) - timedelta(days=within_days))
        sql = """
            SELECT * FROM insights
            WHERE organization_id = ? AND type = ? AND entity_id = ?
              AND created_at > ?
            ORDER BY created_at DESC
            LIMIT 1
        """
        params = (organization_id, str(insight_type), entity_id, cutoff)
        if conn is None:
            row = self.db.fetch_one(sql, params)
        else:
            row = conn.execute(sql, params).fetchone()
        return Insight.from_row(row) if row else None

    def insert_insight(self, insight: Insight, conn: sqlite3.Connection | None = None) -> None:
        columns = ", ".join(INSIGHT_COLUMNS)
        values = ", ".join(f":{c}" for c in INSIGHT_COLUMNS)
        self._run(conn, f"INSERT INTO insights ({columns}) VALUES ({values})", insight.to_row())

    def update_insight(self, insight: Insight, conn: sqlite3.Connection | None = None) -> None:
        updated = self._run(
            conn,
            """
            UPDATE insights
            SET severity = :severity, title = :title, description = :description,
                score = :score, metadata = :metadata,
                recommended_actions = :recommended_actions, updated_at = :updated_at
            WHERE id = :id
            """,
            insight.to_row(),
        )
        if updated == 0:
            raise PersistenceError(f"Insight {insight.id} vanished before update")

    def get_insight(self, insight_id: str) -> Insight | None:
        row = self.db.fetch_one("SELECT * FROM insights WHERE id = ?", (insight_id,))
        return Insight.from_row(row) if row else None

    def list_insights(
        self,
        organization_id: str,
        insight_type: str | None = None,
        entity_id: str | None = None,
        limit: int = 100,
    ) -> list[Insight]:
        sql = "SELECT * FROM insights WHERE organization_id = ?"
        params: list[Any] = [organization_id]
        if insight_type:
            sql += " AND type = ?"
            params.append(str(insight_type))
        if entity_id:
            sql += " AND entity_id = ?"
            params.append(entity_id)
        sql += " ORDER BY updated_at DESC LIMIT ?"
        params.append(limit)
        rows = self.db.fetch_all(sql, tuple(params))
        return [Insight.from_row(r) for r in rows]
