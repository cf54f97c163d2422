"""
orgpulse — Insight Upsert Service

At most one insight per (organization, type, entity) within the recency
window. Find + write run in one BEGIN IMMEDIATE transaction, which
serializes writers across processes; a per-key lock keeps threads of this
process from queueing on the database lock for the same key.
"""

import logging
import threading
from datetime import datetime

from orgpulse import config
from orgpulse.database import Database
from orgpulse.models.base import to_iso, utcnow
from orgpulse.models.indicators import RiskAssessment
from orgpulse.models.insights import Insight, InsightDraft, UpsertResult
from orgpulse.observability import metrics

from .drafts import draft_from_assessment
from .store import SQLiteInsightStore

logger = logging.getLogger(__name__)


class InsightUpsertService:
    def __init__(
        self,
        db: Database,
        store: SQLiteInsightStore | None = None,
        recency_days: int | None = None,
        min_level_rank: int | None = None,
    ):
        self.db = db
        self.store = store or SQLiteInsightStore(db)
        self.recency_days = recency_days if recency_days is not None else config.INSIGHT_RECENCY_DAYS
        self.min_level_rank = min_level_rank if min_level_rank is not None else config.INSIGHT_MIN_LEVEL_RANK
        self._locks: dict[tuple[str, str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: tuple[str, str, str]) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def upsert(self, draft: InsightDraft, now: datetime | None = None) -> UpsertResult:
        """
        Update the recent insight for the draft's key, or insert a new one.

        Raises StorageError (or PersistenceError) when the write fails.
        """
        now = now or utcnow()
        stamp = to_iso(now)
        with self._lock_for(draft.key), self.db.transaction() as conn:
            existing = self.store.find_recent_insight(
                draft.organization_id,
                draft.type,
                draft.entity_id,
                self.recency_days,
                now=now,
                conn=conn,
            )
            if existing is not None:
                existing.apply(draft, stamp)
                self.store.update_insight(existing, conn=conn)
                result = UpsertResult(insight=existing, created=False)
            else:
                insight = Insight.from_draft(draft, stamp)
                self.store.insert_insight(insight, conn=conn)
                result = UpsertResult(insight=insight, created=True)

        if result.created:
            metrics.insights_created.inc()
            logger.info("Created insight %s (%s %s)", result.insight.id, draft.type, draft.entity_id)
        else:
            metrics.insights_updated.inc()
            logger.debug("Refreshed insight %s", result.insight.id)
        return result

    def is_significant(self, assessment: RiskAssessment) -> bool:
        return assessment.level_rank >= self.min_level_rank

    def persist_assessment(self, assessment: RiskAssessment, now: datetime | None = None) -> UpsertResult | None:
        """Upsert the assessment's insight; None when it is below the severity gate."""
        if not self.is_significant(assessment):
            return None
        return self.upsert(draft_from_assessment(assessment), now=now)
