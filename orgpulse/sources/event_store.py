"""
Event store: read access to the organization's normalized events.

Time ranges are half-open [start, end) and results are ordered by timestamp.
Ingestion lives elsewhere; add_events() exists to seed databases for tests
and the CLI.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol

from orgpulse.cancellation import CancellationToken
from orgpulse.database import Database
from orgpulse.models.base import json_loads_safe, parse_datetime, to_iso
from orgpulse.models.events import Event

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    def query_events(
        self,
        organization_id: str,
        actor_id: str,
        start: datetime,
        end: datetime,
        event_types: Sequence[str] | None = None,
        token: CancellationToken | None = None,
    ) -> list[Event]: ...

    def query_process_events(
        self,
        organization_id: str,
        process_id: str,
        start: datetime,
        end: datetime,
        token: CancellationToken | None = None,
    ) -> list[Event]: ...

    def query_interactions(
        self,
        organization_id: str,
        actor_ids: Sequence[str],
        start: datetime,
        end: datetime,
        event_types: Sequence[str],
        token: CancellationToken | None = None,
    ) -> list[Event]: ...


def _row_to_event(row: dict) -> Event:
    return Event(
        organization_id=row["organization_id"],
        actor_id=row["actor_id"],
        timestamp=parse_datetime(row["timestamp"]),
        event_type=row["event_type"],
        metadata=json_loads_safe(row["metadata"], {}) or {},
    )


def _placeholders(values: Sequence) -> str:
    return ",".join("?" for _ in values)


class SQLiteEventStore:
    """EventStore over the `events` table."""

    def __init__(self, db: Database):
        self.db = db

    def query_events(
        self,
        organization_id: str,
        actor_id: str,
        start: datetime,
        end: datetime,
        event_types: Sequence[str] | None = None,
        token: CancellationToken | None = None,
    ) -> list[Event]:
        sql = """
            SELECT organization_id, actor_id, timestamp, event_type, metadata
            FROM events
            WHERE organization_id = ? AND actor_id = ?
              AND timestamp >= ? AND timestamp < ?
        """
        params: list = [organization_id, actor_id, to_iso(start), to_iso(end)]
        if event_types:
            sql += f" AND event_type IN ({_placeholders(event_types)})"
            params.extend(event_types)
        sql += " ORDER BY timestamp, id"
        rows = self.db.fetch_all(sql, tuple(params), token=token)
        return [_row_to_event(r) for r in rows]

    def query_process_events(
        self,
        organization_id: str,
        process_id: str,
        start: datetime,
        end: datetime,
        token: CancellationToken | None = None,
    ) -> list[Event]:
        rows = self.db.fetch_all(
            """
            SELECT organization_id, actor_id, timestamp, event_type, metadata
            FROM events
            WHERE organization_id = ? AND process_id = ?
              AND timestamp >= ? AND timestamp < ?
            ORDER BY timestamp, id
            """,
            (organization_id, process_id, to_iso(start), to_iso(end)),
            token=token,
        )
        return [_row_to_event(r) for r in rows]

    def query_interactions(
        self,
        organization_id: str,
        actor_ids: Sequence[str],
        start: datetime,
        end: datetime,
        event_types: Sequence[str],
        token: CancellationToken | None = None,
    ) -> list[Event]:
        """Events sent by any of `actor_ids`; recipients are filtered by the caller."""
        if not actor_ids:
            return []
        sql = f"""
            SELECT organization_id, actor_id, timestamp, event_type, metadata
            FROM events
            WHERE organization_id = ?
              AND actor_id IN ({_placeholders(actor_ids)})
              AND event_type IN ({_placeholders(event_types)})
              AND timestamp >= ? AND timestamp < ?
            ORDER BY timestamp, id
        """
        params = (organization_id, *actor_ids, *event_types, to_iso(start), to_iso(end))
        rows = self.db.fetch_all(sql, params, token=token)
        return [_row_to_event(r) for r in rows]

    def add_events(self, events: Iterable[Event]) -> int:
        rows = [e.to_row() for e in events]
        if not rows:
            return 0
        self.db.execute_many(
            """
            INSERT INTO events (organization_id, actor_id, timestamp, event_type, process_id, metadata)
            VALUES (:organization_id, :actor_id, :timestamp, :event_type, :process_id, :metadata)
            """,
            rows,
        )
        logger.debug("Stored %d events", len(rows))
        return len(rows)
