"""
Tests for the orgpulse CLI — each command against a temp database.
"""

import json
import logging

import pytest

from orgpulse.cli import main
from orgpulse.models import AlertStatus
from orgpulse.scheduler import build_pipeline
from tests.fixtures import insight, person, subscription


@pytest.fixture(autouse=True)
def restore_root_logging():
    """main() reconfigures the root logger; put the original handlers back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


def run(db_path, *argv):
    return main(["--db", db_path, *argv])


class TestSetup:
    def test_init_db(self, db_path, capsys):
        assert run(db_path, "init-db") == 0
        assert "Database ready at" in capsys.readouterr().out

    def test_load(self, db_path, tmp_path, capsys):
        doc = {
            "entities": [
                {
                    "organization_id": "org-1",
                    "entity_type": "person",
                    "entity_id": "alice",
                    "name": "Alice",
                    "email": "alice@org-1.example",
                    "department": "eng",
                }
            ],
            "events": [
                {
                    "organization_id": "org-1",
                    "actor_id": "alice",
                    "timestamp": "2024-06-03T21:15:00Z",
                    "event_type": "email_sent",
                    "metadata": {"recipientId": "bob"},
                },
                {
                    "organization_id": "org-1",
                    "actor_id": "alice",
                    "timestamp": "not a date",
                    "event_type": "email_sent",
                },
            ],
        }
        path = tmp_path / "data.json"
        path.write_text(json.dumps(doc))

        assert run(db_path, "load", str(path)) == 0
        assert "Loaded 1 entities and 1 events" in capsys.readouterr().out

        pipeline = build_pipeline(db_path)
        assert [p.entity_id for p in pipeline.directory.list_people("org-1")] == ["alice"]
        assert [t.entity_id for t in pipeline.directory.list_teams("org-1")] == ["eng"]


class TestDetect:
    def test_prints_summary(self, db_path, capsys):
        pipeline = build_pipeline(db_path)
        pipeline.directory.upsert_entities([person("org-1", "alice")])

        assert run(db_path, "detect", "--org", "org-1", "--family", "burnout", "--track") == 0
        captured = capsys.readouterr()
        summary = json.loads(captured.out)
        assert summary["organization_id"] == "org-1"
        assert summary["families"]["burnout"]["skipped"] == 1
        assert summary["failed_families"] == []
        assert "[1/1] Burnout risk analysis finished" in captured.err

    def test_invalid_options(self, db_path, capsys):
        assert run(db_path, "detect", "--org", "org-1", "--lookback-days", "0") == 2
        assert "Invalid options" in capsys.readouterr().err


class TestAlerts:
    def _alert(self, db_path):
        pipeline = build_pipeline(db_path)
        return pipeline, pipeline.alert_engine.create_from_insight(insight()).alert

    def test_list(self, db_path, capsys):
        _, alert = self._alert(db_path)
        assert run(db_path, "alerts", "--org", "org-1") == 0
        assert alert.id in capsys.readouterr().out

    def test_list_empty(self, db_path, capsys):
        assert run(db_path, "alerts", "--org", "org-1", "--status", "resolved") == 0
        assert "No alerts" in capsys.readouterr().out

    def test_ack_and_resolve(self, db_path, capsys):
        pipeline, alert = self._alert(db_path)
        assert run(db_path, "ack", alert.id, "--user", "u-1") == 0
        assert f"{alert.id} acknowledged by u-1" in capsys.readouterr().out
        assert run(db_path, "resolve", alert.id) == 0
        assert pipeline.alert_engine.get_alert(alert.id).status == AlertStatus.RESOLVED

    def test_bad_transition_is_an_error(self, db_path, capsys):
        _, alert = self._alert(db_path)
        run(db_path, "resolve", alert.id)
        assert run(db_path, "ack", alert.id, "--user", "u-1") == 1
        assert "cannot move from resolved to acknowledged" in capsys.readouterr().err

    def test_unknown_alert(self, db_path, capsys):
        assert run(db_path, "ack", "alr_missing", "--user", "u-1") == 1
        assert "Alert not found" in capsys.readouterr().err

    def test_dispatch_dry_run(self, db_path, capsys):
        pipeline, alert = self._alert(db_path)
        pipeline.alert_engine.create_subscription(subscription())

        assert run(db_path, "dispatch", "--org", "org-1", "--dry-run") == 0
        summary = json.loads(capsys.readouterr().out)
        assert (summary["processed"], summary["sent"], summary["failed"]) == (1, 1, 0)
        assert pipeline.alert_engine.get_alert(alert.id).status == AlertStatus.SENT


class TestSubscriptions:
    def test_subscribe_list_unsubscribe(self, db_path, tmp_path, capsys):
        path = tmp_path / "sub.json"
        path.write_text(
            json.dumps(
                {
                    "organization_id": "org-1",
                    "name": "ops",
                    "channels": [{"type": "webhook", "url": "https://hooks.example.com/a"}],
                    "severities": ["critical"],
                }
            )
        )
        assert run(db_path, "subscribe", str(path)) == 0
        sub_id = capsys.readouterr().out.strip()
        assert sub_id.startswith("sub_")

        assert run(db_path, "subscriptions", "--org", "org-1") == 0
        [listed] = json.loads(capsys.readouterr().out)
        assert listed["filters"] == {"severities": ["critical"]}

        assert run(db_path, "unsubscribe", sub_id) == 0
        capsys.readouterr()
        assert run(db_path, "subscriptions", "--org", "org-1") == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_invalid_subscription(self, db_path, tmp_path, capsys):
        path = tmp_path / "sub.json"
        path.write_text(json.dumps({"organization_id": "org-1", "name": "ops", "channels": []}))
        assert run(db_path, "subscribe", str(path)) == 2
        assert "Invalid subscription" in capsys.readouterr().err

    def test_unsubscribe_unknown(self, db_path, capsys):
        assert run(db_path, "unsubscribe", "sub_missing") == 1


class TestMetrics:
    def test_json(self, db_path, capsys):
        assert run(db_path, "metrics", "--json") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["detection_runs_total"]["type"] == "counter"

    def test_prometheus(self, db_path, capsys):
        assert run(db_path, "metrics") == 0
        assert "# TYPE alerts_created_total counter" in capsys.readouterr().out
