"""
orgpulse — Database Module

SQLite connection management, transactions and query helpers.

Every call opens its own connection so stores can be shared across worker
threads. Writers that must serialize use transaction(), which takes the
database write lock up front with BEGIN IMMEDIATE.
"""

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from orgpulse import config, paths
from orgpulse.cancellation import CancellationToken, remaining_or
from orgpulse.errors import StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    organization_id TEXT NOT NULL,
    actor_id TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    event_type TEXT NOT NULL,
    process_id TEXT,
    metadata TEXT NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_events_actor
    ON events(organization_id, actor_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_events_process
    ON events(organization_id, process_id, timestamp);

CREATE TABLE IF NOT EXISTS entities (
    organization_id TEXT NOT NULL,
    entity_type TEXT NOT NULL CHECK (entity_type IN ('person', 'process', 'team')),
    entity_id TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    department TEXT,
    PRIMARY KEY (organization_id, entity_type, entity_id)
);
CREATE INDEX IF NOT EXISTS idx_entities_department
    ON entities(organization_id, department);

CREATE TABLE IF NOT EXISTS insights (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    type TEXT NOT NULL,
    category TEXT NOT NULL,
    severity TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    score REAL NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    recommended_actions TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_insights_key
    ON insights(organization_id, type, entity_id, created_at);

CREATE TABLE IF NOT EXISTS alerts (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    insight_id TEXT NOT NULL,
    type TEXT NOT NULL,
    severity TEXT NOT NULL CHECK (severity IN ('info', 'warning', 'error', 'critical')),
    status TEXT NOT NULL CHECK (
        status IN ('pending', 'sent', 'acknowledged', 'resolved', 'expired')
    ),
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    entity_name TEXT,
    action_url TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    notifications_sent TEXT NOT NULL DEFAULT '[]',
    acknowledged_by TEXT,
    acknowledged_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_alerts_live_insight
    ON alerts(insight_id) WHERE status NOT IN ('resolved', 'expired');
CREATE INDEX IF NOT EXISTS idx_alerts_org_status
    ON alerts(organization_id, status, created_at);

CREATE TABLE IF NOT EXISTS alert_subscriptions (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    user_id TEXT,
    name TEXT NOT NULL,
    description TEXT,
    channels TEXT NOT NULL DEFAULT '[]',
    filters TEXT NOT NULL DEFAULT '{}',
    schedule TEXT NOT NULL DEFAULT '{}',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_subscriptions_org
    ON alert_subscriptions(organization_id, is_active);

CREATE TABLE IF NOT EXISTS analysis_jobs (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    scope TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    options TEXT NOT NULL DEFAULT '{}',
    summary TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS in_app_notifications (
    id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    user_id TEXT,
    alert_id TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    severity TEXT NOT NULL,
    action_url TEXT,
    read_at TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_in_app_user
    ON in_app_notifications(organization_id, user_id, read_at);
"""


class Database:
    """SQLite connection and query manager."""

    def __init__(self, db_path: str | Path | None = None, timeout: float | None = None):
        self.db_path = str(db_path or paths.db_path())
        self.timeout = timeout if timeout is not None else config.DB_TIMEOUT_SECONDS
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def connect(self, token: CancellationToken | None = None) -> sqlite3.Connection:
        """
        Open a new connection.

        The busy timeout is the token's remaining time capped by the configured
        timeout. Autocommit mode: transactions are explicit via transaction().
        """
        if token is not None:
            token.raise_if_cancelled()
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=remaining_or(token, self.timeout),
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = self._dict_factory
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise StorageError(f"Could not open {self.db_path}: {e}") from e
        return conn

    @staticmethod
    def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
        return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}

    def init_schema(self) -> None:
        conn = self.connect()
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Schema creation failed: {e}") from e
        finally:
            conn.close()
        logger.info("Database schema ready at %s", self.db_path)

    @contextmanager
    def transaction(
        self, token: CancellationToken | None = None
    ) -> Generator[sqlite3.Connection, None, None]:
        """
        Write transaction holding the database write lock from the start.

        Commits on success, rolls back on exception. IntegrityError propagates
        as-is so callers can detect uniqueness races; other sqlite3 errors
        surface as StorageError.

        Usage:
            with db.transaction() as conn:
                conn.execute("INSERT INTO ...")
        """
        conn = self.connect(token)
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            conn.close()
            raise StorageError(f"Could not begin transaction: {e}") from e
        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.IntegrityError:
            conn.execute("ROLLBACK")
            raise
        except sqlite3.Error as e:
            conn.execute("ROLLBACK")
            raise StorageError(str(e)) from e
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    # =========================================================================
    # Query Helpers
    # =========================================================================

    def execute(
        self, sql: str, params: tuple | dict | None = None, token: CancellationToken | None = None
    ) -> int:
        """Run one write statement in autocommit mode; returns rowcount."""
        conn = self.connect(token)
        try:
            cursor = conn.execute(sql, params or ())
            return cursor.rowcount
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def execute_many(self, sql: str, params_list: list[tuple | dict]) -> None:
        with self.transaction() as conn:
            conn.executemany(sql, params_list)

    def fetch_one(
        self, sql: str, params: tuple | dict | None = None, token: CancellationToken | None = None
    ) -> dict[str, Any] | None:
        conn = self.connect(token)
        try:
            return conn.execute(sql, params or ()).fetchone()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def fetch_all(
        self, sql: str, params: tuple | dict | None = None, token: CancellationToken | None = None
    ) -> list[dict[str, Any]]:
        conn = self.connect(token)
        try:
            return conn.execute(sql, params or ()).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()
