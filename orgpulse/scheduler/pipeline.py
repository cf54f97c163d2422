"""
Composition root: wires stores, detectors, services and the processor
around one database.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from orgpulse import config
from orgpulse.alerts import AlertEngine
from orgpulse.cancellation import CancellationToken
from orgpulse.database import Database
from orgpulse.detection import BaselineCalculator, EntityAnalyzer
from orgpulse.insights import InsightUpsertService, SQLiteInsightStore
from orgpulse.models.alerts import DispatchSummary
from orgpulse.notifier import NotificationSender
from orgpulse.sources import SQLiteEntityDirectory, SQLiteEventStore

from .jobs import AnalysisJobStore
from .processor import PatternDetectionProcessor
from .runner import DetectionRunner

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    db: Database
    events: SQLiteEventStore
    directory: SQLiteEntityDirectory
    insights: SQLiteInsightStore
    analyzer: EntityAnalyzer
    upserter: InsightUpsertService
    alert_engine: AlertEngine
    sender: NotificationSender
    jobs: AnalysisJobStore
    processor: PatternDetectionProcessor
    runner: DetectionRunner

    def dispatch(self, organization_id: str, token: CancellationToken | None = None) -> DispatchSummary:
        return self.alert_engine.process_pending_alerts(organization_id, self.sender.send, token=token)


def build_pipeline(
    db_path: str | Path | None = None,
    dry_run: bool = False,
    thresholds_path: Path | None = None,
    init_schema: bool = True,
) -> Pipeline:
    db = Database(db_path)
    if init_schema:
        db.init_schema()

    events = SQLiteEventStore(db)
    directory = SQLiteEntityDirectory(db)
    insights = SQLiteInsightStore(db)
    analyzer = EntityAnalyzer(
        BaselineCalculator(events, directory),
        threshold_overrides=config.load_thresholds(thresholds_path),
    )
    upserter = InsightUpsertService(db, store=insights)
    alert_engine = AlertEngine(db)
    sender = NotificationSender(db, dry_run=dry_run)
    jobs = AnalysisJobStore(db)
    processor = PatternDetectionProcessor(directory, analyzer, upserter, alert_engine, jobs=jobs)

    logger.debug("Pipeline ready on %s (dry_run=%s)", db.db_path, dry_run)
    return Pipeline(
        db=db,
        events=events,
        directory=directory,
        insights=insights,
        analyzer=analyzer,
        upserter=upserter,
        alert_engine=alert_engine,
        sender=sender,
        jobs=jobs,
        processor=processor,
        runner=DetectionRunner(processor),
    )
