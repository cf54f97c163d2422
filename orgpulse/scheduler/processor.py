"""
orgpulse — Pattern Detection Processor

Runs the requested detector families for one organization:

    list entities -> analyze -> upsert insight -> create alert

Families run concurrently and fail in isolation; per-entity persistence
failures are counted and skipped. run_detection() always returns a summary.
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any

from orgpulse import config
from orgpulse.alerts import AlertEngine
from orgpulse.cancellation import CancellationToken
from orgpulse.detection import EntityAnalyzer
from orgpulse.errors import OperationCancelled, StorageError
from orgpulse.insights import InsightUpsertService
from orgpulse.models.base import DetectorFamily, EntityType
from orgpulse.models.contracts import DetectionJobRequest, DetectionOptions
from orgpulse.models.events import Entity
from orgpulse.models.indicators import RiskAssessment
from orgpulse.models.jobs import FamilyResult, ProgressUpdate, RunSummary
from orgpulse.observability import RunContext, metrics, submit_with_context
from orgpulse.sources import EntityDirectory

from .jobs import AnalysisJobStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]

FAMILY_MESSAGES = {
    DetectorFamily.BURNOUT: "Burnout risk analysis finished",
    DetectorFamily.DEGRADATION: "Process degradation analysis finished",
    DetectorFamily.CONFLICT: "Team conflict analysis finished",
}


class PatternDetectionProcessor:
    def __init__(
        self,
        directory: EntityDirectory,
        analyzer: EntityAnalyzer,
        upserter: InsightUpsertService,
        alert_engine: AlertEngine,
        jobs: AnalysisJobStore | None = None,
        max_workers: int | None = None,
    ):
        self.directory = directory
        self.analyzer = analyzer
        self.upserter = upserter
        self.alert_engine = alert_engine
        self.jobs = jobs
        self.max_workers = max_workers or config.DETECTION_MAX_WORKERS

    # =========================================================================
    # Entry point
    # =========================================================================

    def run_detection(
        self,
        organization_id: str,
        scope: str = "all",
        options: DetectionOptions | dict[str, Any] | None = None,
        progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
        analysis_job_id: str | None = None,
        now: datetime | None = None,
    ) -> RunSummary:
        request = DetectionJobRequest(
            organization_id=organization_id,
            scope=scope,
            options=options or DetectionOptions(),
            analysis_job_id=analysis_job_id,
        )
        families = request.families
        started = time.monotonic()

        with RunContext(organization_id=organization_id) as ctx:
            summary = RunSummary(organization_id=organization_id, run_id=ctx.run_id)
            metrics.detection_runs.inc()
            logger.info("Detection started: scope=%s families=%s", scope, [str(f) for f in families])
            if analysis_job_id:
                self._mark_job_running(analysis_job_id)

            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="detect") as pool:
                futures: dict[Future, DetectorFamily] = {
                    submit_with_context(
                        pool, self._run_family, organization_id, family, request.options, token, now
                    ): family
                    for family in families
                }
                for done, future in enumerate(as_completed(futures), 1):
                    family = futures[future]
                    try:
                        result = future.result()
                    except Exception as e:
                        logger.exception("%s detection failed", family)
                        metrics.detector_failures.inc()
                        result = FamilyResult(error=f"{type(e).__name__}: {e}")
                        summary.failed_families.append(str(family))
                    summary.families[str(family)] = result
                    if result.cancelled:
                        summary.cancelled = True
                    self._report(
                        progress,
                        ProgressUpdate(
                            current=done,
                            total=len(families),
                            stage=str(family),
                            message=FAMILY_MESSAGES[family],
                        ),
                    )

            # Keep the caller's family order regardless of completion order.
            summary.families = {str(f): summary.families[str(f)] for f in families}
            if summary.cancelled:
                metrics.detection_cancelled.inc()

            elapsed = time.monotonic() - started
            metrics.detection_duration.observe(elapsed)
            summary.complete(int(elapsed * 1000))

            if analysis_job_id:
                self._record_job(analysis_job_id, summary)

            logger.info(
                "Detection completed in %dms: analyzed=%d high_risk=%d alerts=%d failed=%s cancelled=%s",
                summary.duration_ms,
                summary.analyzed,
                summary.high_risk_count,
                summary.alerts_generated,
                summary.failed_families,
                summary.cancelled,
            )
        return summary

    # =========================================================================
    # Families
    # =========================================================================

    def _entities(
        self, organization_id: str, family: DetectorFamily, options: DetectionOptions, token
    ) -> list[Entity]:
        listers = {
            EntityType.PERSON: self.directory.list_people,
            EntityType.PROCESS: self.directory.list_processes,
            EntityType.TEAM: self.directory.list_teams,
        }
        entity_type = {
            DetectorFamily.BURNOUT: EntityType.PERSON,
            DetectorFamily.DEGRADATION: EntityType.PROCESS,
            DetectorFamily.CONFLICT: EntityType.TEAM,
        }[family]
        return listers[entity_type](organization_id, ids=options.entity_ids, token=token)

    def _run_family(
        self,
        organization_id: str,
        family: DetectorFamily,
        options: DetectionOptions,
        token: CancellationToken | None,
        now: datetime | None,
    ) -> FamilyResult:
        result = FamilyResult()
        if token is not None and token.cancelled:
            result.cancelled = True
            return result

        plan = self.analyzer.plan(family, options, now=now)
        try:
            entities = self._entities(organization_id, family, options, token)
        except OperationCancelled:
            result.cancelled = True
            return result
        logger.info("%s: %d entities to analyze", family, len(entities))

        for entity in entities:
            if token is not None and token.cancelled:
                result.cancelled = True
                break
            try:
                assessment = self.analyzer.analyze(plan, entity, token)
            except OperationCancelled:
                result.cancelled = True
                break
            except StorageError as e:
                result.read_failures += 1
                metrics.read_failures.inc()
                logger.error("Reading events for %s %s failed: %s", family, entity.entity_id, e)
                continue
            if assessment is None:
                result.skipped += 1
                continue
            self._persist(assessment, result)

        if result.cancelled:
            logger.info("%s cancelled after %d entities", family, result.analyzed + result.skipped)
        return result

    def _persist(self, assessment: RiskAssessment, result: FamilyResult) -> None:
        """Upsert insight and alert; on failure the entity is left out of the counts."""
        insight_written = alert_created = False
        try:
            upsert = self.upserter.persist_assessment(assessment)
            if upsert is not None:
                insight_written = True
                alert_created = self.alert_engine.create_from_insight(upsert.insight).created
        except StorageError as e:
            result.persistence_failures += 1
            metrics.persistence_failures.inc()
            logger.error(
                "Persisting %s assessment for %s failed: %s",
                assessment.family,
                assessment.entity_id,
                e,
            )
            return

        result.analyzed += 1
        metrics.entities_analyzed.inc()
        metrics.indicators_emitted.inc(len(assessment.indicators))
        if assessment.is_high_risk:
            result.high_risk_count += 1
        if insight_written:
            result.insights_written += 1
        if alert_created:
            result.alerts_generated += 1

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _report(progress: ProgressCallback | None, update: ProgressUpdate) -> None:
        if progress is None:
            return
        try:
            progress(update)
        except Exception:
            logger.exception("Progress callback failed at %s", update.stage)

    def _mark_job_running(self, job_id: str) -> None:
        if self.jobs is None:
            return
        try:
            self.jobs.mark_running(job_id)
        except StorageError as e:
            logger.warning("Failed to mark analysis job %s running: %s", job_id, e)

    def _record_job(self, job_id: str, summary: RunSummary) -> None:
        if self.jobs is None:
            logger.warning("No job store configured, summary for job %s not recorded", job_id)
            return
        try:
            self.jobs.complete_job(job_id, summary)
        except StorageError as e:
            logger.warning("Failed to update analysis job record %s: %s", job_id, e)
