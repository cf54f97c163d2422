"""
Scenario: detection through dispatch.

Tests the full path:
1. Seed entities and events
2. Run detection for a fixed clock
3. Insights and alerts land in the database
4. Dispatch in dry-run mode and walk the alert lifecycle
"""

import pytest

from orgpulse.models import (
    AlertSeverity,
    AlertStatus,
    ChannelType,
    DetectionJobRequest,
    InsightType,
    NotificationStatus,
    Severity,
    SubscriptionChannel,
    SubscriptionFilter,
)
from tests.fixtures import NOW, subscription, webhook_channel


class TestAfterHoursScenario:
    """Rising after-hours work turns into a critical burnout alert."""

    def test_rising_after_hours_path(self, pipeline, seed_person):
        seed_person("org-1", "alice", current_after_hours=3, baseline_after_hours=1)
        seed_person("org-1", "bob", current_after_hours=0, baseline_after_hours=0)

        summary = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)
        assert summary.analyzed == 2
        assert summary.alerts_generated == 1

        [insight] = pipeline.insights.list_insights("org-1")
        assert insight.entity_id == "alice"
        assert insight.type == InsightType.BURNOUT_RISK
        assert insight.severity == Severity.CRITICAL
        assert insight.score == 100.0
        extended = insight.metadata["indicators"][0]
        assert extended["type"] == "extended_hours"
        assert extended["trend"] == "increasing"
        assert extended["metadata"]["relative_change"] == pytest.approx(2.0)
        assert insight.recommended_actions[0] == "URGENT: Immediate management attention recommended"

        [alert] = pipeline.alert_engine.list_alerts("org-1")
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.entity_name == "Alice"

    def test_dispatch_and_lifecycle(self, pipeline, seed_person):
        seed_person("org-1", "alice")
        pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)
        pipeline.alert_engine.create_subscription(
            subscription(
                channels=[webhook_channel(), SubscriptionChannel(ChannelType.IN_APP)],
                filters=SubscriptionFilter(severities=["critical"], categories=["people"]),
            )
        )
        pipeline.alert_engine.create_subscription(
            subscription(name="info only", filters=SubscriptionFilter(severities=["info"]))
        )

        dispatched = pipeline.dispatch("org-1")
        assert (dispatched.processed, dispatched.sent, dispatched.failed) == (1, 2, 0)

        [alert] = pipeline.alert_engine.list_alerts("org-1")
        assert alert.status == AlertStatus.SENT
        assert {n.channel for n in alert.notifications_sent} == {ChannelType.WEBHOOK, ChannelType.IN_APP}
        assert all(n.status == NotificationStatus.SENT for n in alert.notifications_sent)

        pipeline.alert_engine.acknowledge(alert.id, "lead-1")
        pipeline.alert_engine.resolve(alert.id)

        # Same finding again: the insight is refreshed, the resolved alert is not reopened.
        rerun = pipeline.processor.run_detection("org-1", scope="burnout", now=NOW)
        assert rerun.alerts_generated == 1
        assert len(pipeline.insights.list_insights("org-1")) == 1
        statuses = sorted(a.status for a in pipeline.alert_engine.list_alerts("org-1"))
        assert statuses == [AlertStatus.PENDING, AlertStatus.RESOLVED]


class TestProcessDegradationScenario:
    """Slower approvals double the cycle time of a process."""

    def test_slow_approvals_path(self, pipeline, seed_process):
        seed_process("org-1", "billing", recent_approval_hours=72)

        summary = pipeline.processor.run_detection("org-1", scope="degradation", now=NOW)
        assert summary.families["degradation"].analyzed == 1

        [insight] = pipeline.insights.list_insights("org-1")
        assert insight.type == InsightType.PROCESS_DEGRADATION
        assert insight.title == "Process Degradation: billing"
        assert [i["type"] for i in insight.metadata["indicators"]] == ["cycle_time_increase"]
        assert insight.description.startswith(
            "Health score: 0/100. Failure risk: 40%. Estimated time to failure: 2 weeks"
        )
        assert insight.metadata["forecast"]["time_to_failure"] == {"value": 2, "unit": "weeks", "confidence": 0.5}

    def test_unchanged_process_stays_quiet(self, pipeline, seed_process):
        seed_process("org-1", "billing", recent_approval_hours=24)
        summary = pipeline.processor.run_detection("org-1", scope="degradation", now=NOW)
        assert summary.families["degradation"].analyzed == 1
        assert pipeline.insights.list_insights("org-1") == []


class TestMultiOrganizationScenario:
    """Organizations run side by side without leaking into each other."""

    def test_three_orgs_concurrently(self, pipeline, seed_person):
        seed_person("acme", "alice", current_after_hours=3, baseline_after_hours=1)
        seed_person("acme", "carol", current_after_hours=4, baseline_after_hours=1)
        seed_person("globex", "alice", current_after_hours=0, baseline_after_hours=0)

        requests = [
            DetectionJobRequest(organization_id=org, scope="burnout")
            for org in ("acme", "globex", "initech")
        ]
        summaries = pipeline.runner.run_many(requests, max_workers=3, now=NOW)

        assert [s.organization_id for s in summaries] == ["acme", "globex", "initech"]
        assert [s.alerts_generated for s in summaries] == [2, 0, 0]
        assert [s.analyzed for s in summaries] == [2, 1, 0]
        assert len({s.run_id for s in summaries}) == 3

        acme = pipeline.insights.list_insights("acme")
        assert sorted(i.entity_id for i in acme) == ["alice", "carol"]
        assert all(i.organization_id == "acme" for i in acme)
        assert pipeline.insights.list_insights("globex") == []
        assert pipeline.alert_engine.list_alerts("globex") == []
        assert pipeline.alert_engine.list_alerts("initech") == []
