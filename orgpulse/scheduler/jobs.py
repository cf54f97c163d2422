"""
orgpulse — Analysis Job Records

Tracks queued detection jobs in the analysis_jobs table.
"""

import logging
from typing import Any

from orgpulse.database import Database
from orgpulse.models.base import generate_id, json_dumps, json_loads_safe, now_iso
from orgpulse.models.contracts import DetectionOptions
from orgpulse.models.jobs import RunSummary

logger = logging.getLogger(__name__)


class AnalysisJobStore:
    def __init__(self, db: Database):
        self.db = db

    def create_job(self, organization_id: str, scope: str, options: DetectionOptions | None = None) -> str:
        job_id = generate_id("job")
        now = now_iso()
        self.db.execute(
            """
            INSERT INTO analysis_jobs (id, organization_id, scope, status, options, created_at, updated_at)
            VALUES (?, ?, ?, 'pending', ?, ?, ?)
            """,
            (
                job_id,
                organization_id,
                scope,
                json_dumps(options.model_dump(exclude_none=True) if options else {}),
                now,
                now,
            ),
        )
        return job_id

    def mark_running(self, job_id: str) -> None:
        self.db.execute(
            "UPDATE analysis_jobs SET status = 'running', updated_at = ? WHERE id = ?",
            (now_iso(), job_id),
        )

    def complete_job(self, job_id: str, summary: RunSummary) -> bool:
        status = "cancelled" if summary.cancelled else "completed"
        now = now_iso()
        updated = self.db.execute(
            """
            UPDATE analysis_jobs
            SET status = ?, summary = ?, updated_at = ?, completed_at = ?
            WHERE id = ?
            """,
            (status, json_dumps(summary.to_dict()), now, now, job_id),
        )
        if updated == 0:
            logger.warning("Analysis job %s not found, summary not recorded", job_id)
        return updated == 1

    def get_job(self, job_id: str) -> dict[str, Any] | None:
        row = self.db.fetch_one("SELECT * FROM analysis_jobs WHERE id = ?", (job_id,))
        if row is None:
            return None
        row["options"] = json_loads_safe(row["options"], {})
        row["summary"] = json_loads_safe(row["summary"])
        return row
