"""
Multi-organization detection runner.

Each organization runs in its own worker with its own run context; one
organization's failure never affects another's summary.
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from orgpulse import config
from orgpulse.cancellation import CancellationToken
from orgpulse.models.contracts import DetectionJobRequest
from orgpulse.models.jobs import FamilyResult, RunSummary
from orgpulse.observability import generate_run_id

from .processor import PatternDetectionProcessor, ProgressCallback

logger = logging.getLogger(__name__)


class DetectionRunner:
    def __init__(self, processor: PatternDetectionProcessor, max_workers: int | None = None):
        self.processor = processor
        self.max_workers = max_workers or config.ORG_MAX_WORKERS

    def _run_one(
        self,
        request: DetectionJobRequest,
        token: CancellationToken | None,
        progress: ProgressCallback | None,
        now: datetime | None,
    ) -> RunSummary:
        try:
            return self.processor.run_detection(
                request.organization_id,
                scope=request.scope,
                options=request.options,
                progress=progress,
                token=token,
                analysis_job_id=request.analysis_job_id,
                now=now,
            )
        except Exception as e:
            logger.exception("Detection for %s failed outright", request.organization_id)
            summary = RunSummary(organization_id=request.organization_id, run_id=generate_run_id())
            for family in request.families:
                summary.families[str(family)] = FamilyResult(error=f"{type(e).__name__}: {e}")
                summary.failed_families.append(str(family))
            summary.complete(0)
            return summary

    def run_many(
        self,
        requests: Sequence[DetectionJobRequest],
        max_workers: int | None = None,
        token: CancellationToken | None = None,
        progress: ProgressCallback | None = None,
        now: datetime | None = None,
    ) -> list[RunSummary]:
        """Run every request concurrently; summaries come back in request order."""
        if not requests:
            return []
        workers = max_workers or self.max_workers
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="org") as pool:
            futures = [pool.submit(self._run_one, r, token, progress, now) for r in requests]
            summaries = [f.result() for f in futures]
        logger.info(
            "Ran detection for %d organizations: %d alerts generated",
            len(summaries),
            sum(s.alerts_generated for s in summaries),
        )
        return summaries
