"""
Tests for PatternDetectionProcessor — per-organization detection runs.

Each run: list entities -> analyze -> upsert insight -> create alert, with
families isolated from each other's failures.
"""

from orgpulse.cancellation import CancellationToken
from orgpulse.errors import StorageError
from orgpulse.models import AlertStatus, DetectorFamily, InsightType
from tests.fixtures import NOW, burnout_history, person


def seed(pipeline, org="org-1", actor="alice", **history):
    pipeline.directory.upsert_entities([person(org, actor)])
    pipeline.events.add_events(burnout_history(org, actor, **history))


class TestRunDetection:
    def test_after_hours_person_gets_insight_and_alert(self, pipeline):
        seed(pipeline)
        summary = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)

        burnout = summary.families["burnout"]
        assert (burnout.analyzed, burnout.insights_written, burnout.alerts_generated) == (1, 1, 1)
        assert summary.high_risk_count == 1
        assert summary.failed_families == []
        assert summary.completed_at is not None

        [insight] = pipeline.insights.list_insights("org-1")
        assert insight.type == InsightType.BURNOUT_RISK
        assert insight.entity_id == "alice"
        assert insight.metadata["indicators"][0]["type"] == "extended_hours"

        [alert] = pipeline.alert_engine.list_alerts("org-1")
        assert alert.insight_id == insight.id
        assert alert.status == AlertStatus.PENDING

    def test_rerun_refreshes_instead_of_duplicating(self, pipeline):
        seed(pipeline)
        pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)
        second = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)

        assert second.insights_written == 1
        assert second.alerts_generated == 0
        assert len(pipeline.insights.list_insights("org-1")) == 1
        assert len(pipeline.alert_engine.list_alerts("org-1")) == 1

    def test_steady_person_is_below_the_gate(self, pipeline):
        seed(pipeline, current_after_hours=0, baseline_after_hours=0)
        summary = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)

        assert summary.families["burnout"].analyzed == 1
        assert summary.insights_written == 0
        assert pipeline.insights.list_insights("org-1") == []

    def test_person_without_history_is_skipped(self, pipeline):
        pipeline.directory.upsert_entities([person("org-1", "dave")])
        summary = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)
        assert summary.families["burnout"].skipped == 1
        assert summary.analyzed == 0

    def test_entity_ids_restrict_the_run(self, pipeline):
        seed(pipeline, actor="alice")
        seed(pipeline, actor="bob")
        summary = pipeline.processor.run_detection(
            "org-1", scope="burnout", options={"entity_ids": ["bob"]}, now=NOW
        )
        assert summary.analyzed == 1
        assert [i.entity_id for i in pipeline.insights.list_insights("org-1")] == ["bob"]

    def test_family_order_follows_request(self, pipeline):
        summary = pipeline.processor.run_detection("org-1", scope="all", now=NOW)
        assert list(summary.families) == ["burnout", "degradation", "conflict"]


class TestProgress:
    def test_reports_once_per_family(self, pipeline):
        updates = []
        pipeline.processor.run_detection("org-1", scope="all", progress=updates.append, now=NOW)

        assert len(updates) == 3
        assert sorted(u.current for u in updates) == [1, 2, 3]
        assert {u.total for u in updates} == {3}
        assert {u.stage for u in updates} == {"burnout", "degradation", "conflict"}
        assert max(u.percent for u in updates) == 100

    def test_broken_callback_does_not_fail_the_run(self, pipeline):
        seed(pipeline)

        def explode(update):
            raise RuntimeError("ui went away")

        summary = pipeline.processor.run_detection("org-1", scope="burnout", progress=explode, now=NOW)
        assert summary.analyzed == 1


class TestFailureIsolation:
    def test_one_family_failing_leaves_the_others(self, pipeline, monkeypatch):
        seed(pipeline)
        original = pipeline.analyzer.plan

        def plan(family, options=None, now=None):
            if family == DetectorFamily.DEGRADATION:
                raise RuntimeError("bad thresholds")
            return original(family, options, now=now)

        monkeypatch.setattr(pipeline.analyzer, "plan", plan)
        summary = pipeline.processor.run_detection("org-1", scope="all", now=NOW)

        assert summary.failed_families == ["degradation"]
        assert summary.families["degradation"].error == "RuntimeError: bad thresholds"
        assert summary.families["burnout"].analyzed == 1
        assert summary.families["conflict"].error is None

    def test_persistence_failure_is_counted_and_skipped(self, pipeline, monkeypatch):
        seed(pipeline, actor="alice")

        def refuse(assessment, now=None):
            raise StorageError("disk I/O error")

        monkeypatch.setattr(pipeline.upserter, "persist_assessment", refuse)
        summary = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)

        burnout = summary.families["burnout"]
        assert burnout.persistence_failures == 1
        assert burnout.analyzed == 0
        assert summary.failed_families == []

    def test_read_failure_skips_only_that_entity(self, pipeline, monkeypatch):
        seed(pipeline, actor="alice")
        seed(pipeline, actor="bob")
        original = pipeline.events.query_events

        def query_events(organization_id, actor_id, start, end, **kwargs):
            if actor_id == "bob":
                raise StorageError("disk I/O error")
            return original(organization_id, actor_id, start, end, **kwargs)

        monkeypatch.setattr(pipeline.events, "query_events", query_events)
        summary = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)

        burnout = summary.families["burnout"]
        assert burnout.error is None
        assert burnout.read_failures == 1
        assert (burnout.analyzed, burnout.insights_written, burnout.alerts_generated) == (1, 1, 1)
        assert summary.read_failures == 1
        assert summary.failed_families == []
        assert [i.entity_id for i in pipeline.insights.list_insights("org-1")] == ["alice"]


class TestCancellation:
    def test_cancelled_token_returns_a_summary(self, pipeline):
        seed(pipeline)
        token = CancellationToken()
        token.cancel()

        summary = pipeline.processor.run_detection("org-1", scope="all", token=token, now=NOW)

        assert summary.cancelled
        assert summary.analyzed == 0
        assert all(r.cancelled for r in summary.families.values())
        assert pipeline.insights.list_insights("org-1") == []


class TestAnalysisJobs:
    def test_job_record_is_completed(self, pipeline):
        seed(pipeline)
        job_id = pipeline.jobs.create_job("org-1", "burnout")
        pipeline.processor.run_detection("org-1", scope="burnout", analysis_job_id=job_id, now=NOW)

        job = pipeline.jobs.get_job(job_id)
        assert job["status"] == "completed"
        assert job["summary"]["analyzed"] == 1
        assert job["summary"]["alerts_generated"] == 1
        assert job["completed_at"] is not None

    def test_cancelled_run_marks_job_cancelled(self, pipeline):
        job_id = pipeline.jobs.create_job("org-1", "all")
        token = CancellationToken()
        token.cancel()
        pipeline.processor.run_detection("org-1", token=token, analysis_job_id=job_id, now=NOW)
        assert pipeline.jobs.get_job(job_id)["status"] == "cancelled"

    def test_unknown_job_id_does_not_fail_the_run(self, pipeline):
        summary = pipeline.processor.run_detection("org-1", scope="burnout", analysis_job_id="job_missing", now=NOW)
        assert summary.failed_families == []
