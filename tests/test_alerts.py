"""
Tests for AlertEngine — alert creation, lifecycle and subscription matching.
"""

import pytest

from orgpulse.alerts import AlertEngine, subscription_matches
from orgpulse.alerts.lifecycle import can_transition
from orgpulse.alerts.mapping import INSIGHT_ALERT_SEVERITY, INSIGHT_ALERT_TYPE, alert_severity_for
from orgpulse.errors import AlertNotFoundError, AlertTransitionError
from orgpulse.models import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    InsightType,
    Severity,
    SubscriptionFilter,
)
from tests.fixtures import insight, subscription


@pytest.fixture
def engine(db):
    return AlertEngine(db, max_workers=2, send_timeout=1.0, app_url="https://pulse.example.com/")


class TestMapping:
    def test_every_insight_type_has_an_alert_type(self):
        assert set(INSIGHT_ALERT_TYPE) == set(InsightType)

    def test_every_severity_has_an_alert_severity(self):
        assert set(INSIGHT_ALERT_SEVERITY) == set(Severity)

    @pytest.mark.parametrize(
        "severity,expected",
        [
            (Severity.CRITICAL, AlertSeverity.CRITICAL),
            (Severity.HIGH, AlertSeverity.ERROR),
            (Severity.MEDIUM, AlertSeverity.WARNING),
            (Severity.LOW, AlertSeverity.INFO),
        ],
    )
    def test_severity_mapping(self, severity, expected):
        assert alert_severity_for(severity) == expected


class TestCreateFromInsight:
    def test_builds_alert_from_insight(self, engine):
        source = insight(severity=Severity.CRITICAL)
        source.recommended_actions = ["Talk to Alice", "Rebalance work"]
        creation = engine.create_from_insight(source)

        alert = creation.alert
        assert creation.created
        assert alert.id.startswith("alr_")
        assert alert.status == AlertStatus.PENDING
        assert alert.type == AlertType.BURNOUT_WARNING
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.entity_name == "Alice"
        assert alert.action_url == f"https://pulse.example.com/insights/{source.id}"
        assert alert.message.endswith("Recommended actions:\n1. Talk to Alice\n2. Rebalance work")
        assert alert.metadata.insight_category == "people"
        assert alert.metadata.insight_score == 62.5

    def test_idempotent_while_live(self, engine):
        source = insight()
        first = engine.create_from_insight(source)
        second = engine.create_from_insight(source)
        assert not second.created
        assert second.alert.id == first.alert.id
        assert len(engine.list_alerts("org-1")) == 1

    def test_acknowledged_alert_is_still_live(self, engine):
        source = insight()
        first = engine.create_from_insight(source)
        engine.acknowledge(first.alert.id, "u-1")
        assert engine.create_from_insight(source).alert.id == first.alert.id

    def test_resolved_alert_allows_a_new_one(self, engine):
        source = insight()
        first = engine.create_from_insight(source)
        engine.resolve(first.alert.id)
        second = engine.create_from_insight(source)
        assert second.created
        assert second.alert.id != first.alert.id
        assert len(engine.list_alerts("org-1")) == 2


class TestLifecycle:
    def test_full_chain(self, engine):
        alert_id = engine.create_from_insight(insight()).alert.id
        assert engine.update_status(alert_id, AlertStatus.SENT).status == AlertStatus.SENT
        acked = engine.acknowledge(alert_id, "u-7")
        assert acked.status == AlertStatus.ACKNOWLEDGED
        assert acked.acknowledged_by == "u-7"
        assert acked.acknowledged_at is not None
        assert engine.resolve(alert_id).status == AlertStatus.RESOLVED

    def test_terminal_states_reject_changes(self, engine):
        alert_id = engine.create_from_insight(insight()).alert.id
        engine.resolve(alert_id)
        with pytest.raises(AlertTransitionError) as exc:
            engine.update_status(alert_id, AlertStatus.PENDING)
        assert exc.value.current == "resolved"
        assert exc.value.requested == "pending"

    def test_acknowledged_cannot_expire(self, engine):
        alert_id = engine.create_from_insight(insight()).alert.id
        engine.acknowledge(alert_id, "u-1")
        with pytest.raises(AlertTransitionError):
            engine.expire(alert_id)

    def test_same_status_is_a_no_op(self, engine):
        alert = engine.create_from_insight(insight()).alert
        unchanged = engine.update_status(alert.id, AlertStatus.PENDING)
        assert unchanged.status == AlertStatus.PENDING
        assert unchanged.updated_at == alert.updated_at

    def test_unknown_alert(self, engine):
        with pytest.raises(AlertNotFoundError):
            engine.acknowledge("alr_missing", "u-1")

    def test_transition_table(self):
        assert can_transition(AlertStatus.PENDING, AlertStatus.EXPIRED)
        assert can_transition(AlertStatus.SENT, AlertStatus.EXPIRED)
        assert not can_transition(AlertStatus.ACKNOWLEDGED, AlertStatus.SENT)
        assert not can_transition(AlertStatus.EXPIRED, AlertStatus.RESOLVED)

    def test_list_filters(self, engine):
        first = engine.create_from_insight(insight(entity_id="alice", severity=Severity.CRITICAL)).alert
        engine.create_from_insight(insight(entity_id="bob", severity=Severity.MEDIUM))
        engine.resolve(first.id)

        assert [a.entity_id for a in engine.list_alerts("org-1", statuses=["resolved"])] == ["alice"]
        assert [a.entity_id for a in engine.list_alerts("org-1", severities=["warning"])] == ["bob"]
        assert engine.list_alerts("org-2") == []


class TestSubscriptionMatching:
    def _alert(self, engine, severity=Severity.MEDIUM, score=62.5):
        return engine.create_from_insight(insight(severity=severity, score=score)).alert

    def test_no_filters_match_everything(self, engine):
        assert subscription_matches(subscription(), self._alert(engine))

    def test_empty_lists_match_everything(self, engine):
        filters = SubscriptionFilter(types=[], severities=[], categories=[])
        assert subscription_matches(subscription(filters=filters), self._alert(engine))

    def test_severity_filter(self, engine):
        alert = self._alert(engine, Severity.MEDIUM)
        assert not subscription_matches(subscription(filters=SubscriptionFilter(severities=["critical"])), alert)
        assert subscription_matches(subscription(filters=SubscriptionFilter(severities=["warning"])), alert)

    def test_type_and_entity_type_filters(self, engine):
        alert = self._alert(engine)
        assert subscription_matches(
            subscription(filters=SubscriptionFilter(types=["burnout_warning"], entity_types=["person"])), alert
        )
        assert not subscription_matches(subscription(filters=SubscriptionFilter(entity_types=["team"])), alert)

    def test_category_filter_uses_insight_category(self, engine):
        alert = self._alert(engine)
        assert subscription_matches(subscription(filters=SubscriptionFilter(categories=["people"])), alert)
        assert not subscription_matches(subscription(filters=SubscriptionFilter(categories=["process"])), alert)

    def test_min_score(self, engine):
        alert = self._alert(engine, score=62.5)
        assert subscription_matches(subscription(filters=SubscriptionFilter(min_score=62.5)), alert)
        assert not subscription_matches(subscription(filters=SubscriptionFilter(min_score=70)), alert)

    def test_matching_skips_inactive_and_other_orgs(self, engine):
        alert = self._alert(engine)
        live = engine.create_subscription(subscription(name="live"))
        gone = engine.create_subscription(subscription(name="gone"))
        engine.create_subscription(subscription(org="org-2", name="elsewhere"))
        engine.delete_subscription(gone.id)

        assert [s.id for s in engine.get_matching_subscriptions(alert)] == [live.id]
