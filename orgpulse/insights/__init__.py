"""
orgpulse — Insights

Deduplicated insight records built from risk assessments.
"""

from .drafts import draft_from_assessment
from .store import InsightStore, SQLiteInsightStore
from .upsert import InsightUpsertService

__all__ = [
    "InsightStore",
    "InsightUpsertService",
    "SQLiteInsightStore",
    "draft_from_assessment",
]
