"""
Tests for the baseline calculator — metric windows built from raw events.
"""

from datetime import UTC, datetime, timedelta

import pytest

from orgpulse.detection import BaselineCalculator, analysis_ranges
from orgpulse.detection.baseline import (
    build_process_window,
    build_team_window,
    build_work_pattern_window,
    weekday_sunday_first,
    week_start,
)
from orgpulse.sources import SQLiteEntityDirectory, SQLiteEventStore
from tests.fixtures import NOW, case_events, event, interactions, person, process

ORG = "org-1"


class TestAnalysisRanges:
    def test_baseline_ends_where_current_starts(self):
        current, baseline = analysis_ranges(NOW, 30, 90)
        assert current.end == NOW
        assert current.start == NOW - timedelta(days=30)
        assert baseline.end == current.start
        assert baseline.start == NOW - timedelta(days=120)

    def test_naive_now_is_utc(self):
        current, _ = analysis_ranges(datetime(2024, 6, 3, 12, 0), 14, 60)
        assert current.end.tzinfo is not None
        assert current.end == NOW


class TestCalendarHelpers:
    def test_sunday_is_zero_saturday_is_six(self):
        assert weekday_sunday_first(datetime(2024, 6, 2, tzinfo=UTC)) == 0
        assert weekday_sunday_first(datetime(2024, 6, 1, tzinfo=UTC)) == 6
        assert weekday_sunday_first(datetime(2024, 6, 3, tzinfo=UTC)) == 1

    def test_week_starts_on_monday(self):
        assert week_start(datetime(2024, 6, 1, 11, tzinfo=UTC)) == "2024-05-27"
        assert week_start(datetime(2024, 6, 3, 0, tzinfo=UTC)) == "2024-06-03"


class TestWorkPatternWindow:
    """Per-person rates, averages and weekly volume."""

    def _events(self):
        return [
            event(ORG, "alice", datetime(2024, 5, 27, 10, tzinfo=UTC), responseTimeMs=1000, bodyLength=100),
            event(ORG, "alice", datetime(2024, 5, 27, 20, tzinfo=UTC), bodyLength=300),
            event(ORG, "alice", datetime(2024, 5, 28, 23, tzinfo=UTC)),
            event(ORG, "alice", datetime(2024, 6, 1, 11, tzinfo=UTC)),
        ]

    def test_counts_and_rates(self):
        window = build_work_pattern_window("alice", self._events(), NOW - timedelta(days=30), NOW)
        assert window.total_events == 4
        assert window.after_hours_events == 2
        assert window.late_night_events == 1
        assert window.weekend_events == 1
        assert window.after_hours_rate == pytest.approx(0.5)
        assert window.weekend_rate == pytest.approx(0.25)

    def test_averages_ignore_missing_metadata(self):
        window = build_work_pattern_window("alice", self._events(), NOW - timedelta(days=30), NOW)
        assert window.avg_response_time_ms == pytest.approx(1000)
        assert window.avg_message_length == pytest.approx(200)

    def test_weekly_volume_keyed_by_monday(self):
        window = build_work_pattern_window("alice", self._events(), NOW - timedelta(days=30), NOW)
        assert window.volume_by_week == {"2024-05-27": 4}
        assert window.avg_weekly_volume == pytest.approx(4)
        assert window.recent_weekly_volume(weeks=2) is None

    def test_custom_business_hours(self):
        events = [event(ORG, "alice", datetime(2024, 5, 27, 17, 30, tzinfo=UTC))]
        default = build_work_pattern_window("alice", events, NOW - timedelta(days=30), NOW)
        short_day = build_work_pattern_window("alice", events, NOW - timedelta(days=30), NOW, (9, 17))
        assert default.after_hours_events == 0
        assert short_day.after_hours_events == 1

    def test_naive_timestamps_are_utc(self):
        events = [event(ORG, "alice", datetime(2024, 5, 27, 20, 0))]
        window = build_work_pattern_window("alice", events, NOW - timedelta(days=30), NOW)
        assert window.after_hours_events == 1

    def test_no_events_gives_zeroed_window(self):
        window = build_work_pattern_window("alice", [], NOW - timedelta(days=30), NOW)
        assert window.is_empty
        assert window.after_hours_rate == 0.0
        assert window.avg_weekly_volume == 0.0


class TestProcessWindow:
    """Case-level statistics over cases with at least two events."""

    def _events(self):
        start = NOW - timedelta(days=10)
        return (
            case_events(ORG, "billing", "A", start, [("submitted", 2), ("reviewed", 2), ("approved", 0)])
            + case_events(
                ORG,
                "billing",
                "B",
                start,
                [("submitted", 1), ("error_raised", 1), ("rework_started", 1), ("approved", 0)],
            )
            + case_events(ORG, "billing", "C", start, [("submitted", 0)])
        )

    def test_case_statistics(self):
        window = build_process_window("billing", self._events(), NOW - timedelta(days=14), NOW)
        assert window.total_events == 8
        assert window.case_count == 2
        assert window.avg_cycle_time == pytest.approx(12600)
        assert window.median_cycle_time == pytest.approx(12600)
        assert window.cycle_time_variance == pytest.approx(6_480_000)
        assert window.throughput_per_day == pytest.approx(2 / 14)

    def test_error_and_rework_markers(self):
        window = build_process_window("billing", self._events(), NOW - timedelta(days=14), NOW)
        assert window.error_rate == pytest.approx(0.5)
        assert window.rework_rate == pytest.approx(0.5)

    def test_step_skip_rate_counts_every_case(self):
        window = build_process_window("billing", self._events(), NOW - timedelta(days=14), NOW)
        assert window.step_skip_rate == pytest.approx((0.4 + 0.2 + 0.8) / 3)

    def test_bottleneck_steps(self):
        start = NOW - timedelta(days=10)
        events = []
        for case_id in ("A", "B", "C"):
            events += case_events(
                ORG, "billing", case_id, start, [("submitted", 1), ("reviewed", 10), ("approved", 0)]
            )
        window = build_process_window("billing", events, NOW - timedelta(days=14), NOW)
        assert window.avg_step_duration == {"submitted": 3600.0, "reviewed": 36000.0}
        assert window.bottleneck_steps == ["reviewed"]

    def test_no_events(self):
        window = build_process_window("billing", [], NOW - timedelta(days=14), NOW)
        assert window.case_count == 0
        assert window.throughput_per_day == 0.0


class TestTeamWindow:
    """Pairwise communication graph between team members."""

    def _members(self):
        return [person(ORG, "a", "eng"), person(ORG, "b", "eng"), person(ORG, "c", "eng")]

    def _events(self):
        start = NOW - timedelta(days=5)
        return (
            interactions(ORG, "a", "b", start, 4, responseTimeMs=1000)
            + interactions(ORG, "b", "a", start, 2, responseTimeMs=4000, hasManagerCC=True)
            + interactions(ORG, "a", "c", start, 1, event_type="meeting_attended", isDirect=True)
            + interactions(ORG, "a", "outsider", start, 3)
            + interactions(ORG, "a", "a", start, 2)
            + interactions(ORG, "a", "b", start, 2, event_type="email_received")
        )

    def test_pairs_merge_both_directions(self):
        window = build_team_window("eng", self._members(), self._events(), NOW - timedelta(days=30), NOW)
        assert [p.key for p in window.pairs] == [("a", "b"), ("a", "c")]
        ab = window.pair("b", "a")
        assert ab.message_count == 6
        assert ab.avg_response_time_1to2 == pytest.approx(1000)
        assert ab.avg_response_time_2to1 == pytest.approx(4000)
        assert ab.response_asymmetry == pytest.approx(4.0)
        assert ab.manager_cc_count == 2

    def test_team_metrics(self):
        window = build_team_window("eng", self._members(), self._events(), NOW - timedelta(days=30), NOW)
        assert window.total_events == 7
        assert window.member_count == 3
        assert window.avg_intra_team_messages == pytest.approx(3)
        assert window.avg_response_time == pytest.approx(1250)
        assert window.management_escalation_rate == pytest.approx(2 / 7)
        assert window.communication_density == pytest.approx(2 / 3)

    def test_single_member_team_is_empty(self):
        window = build_team_window("solo", [person(ORG, "a", "solo")], self._events(), NOW, NOW)
        assert window.total_events == 0
        assert window.pairs == []


class TestBaselineCalculator:
    """Windows read through the SQLite stores."""

    @pytest.fixture
    def calculator(self, db):
        events = SQLiteEventStore(db)
        directory = SQLiteEntityDirectory(db)
        directory.upsert_entities(
            [person(ORG, "alice", "eng"), person(ORG, "bob", "eng"), process(ORG, "billing")]
        )
        start, end = NOW - timedelta(days=30), NOW
        events.add_events(
            [
                event(ORG, "alice", start),
                event(ORG, "alice", end),
                event(ORG, "alice", start + timedelta(days=1), "email_received"),
                event(ORG, "alice", start + timedelta(days=2), "task_completed"),
                event("org-2", "alice", start + timedelta(days=3)),
            ]
            + interactions(ORG, "alice", "bob", start + timedelta(days=4), 3)
            + case_events(ORG, "billing", "A", start + timedelta(days=5), [("submitted", 1), ("approved", 0)])
        )
        return BaselineCalculator(events, directory)

    def test_range_is_half_open_and_org_scoped(self, calculator):
        window = calculator.work_pattern_window(ORG, "alice", NOW - timedelta(days=30), NOW)
        # start event, email_received and three interactions; end, task and other org excluded
        assert window.total_events == 5

    def test_team_window_reads_members_from_directory(self, calculator):
        window = calculator.team_window(ORG, "eng", NOW - timedelta(days=30), NOW)
        assert window.member_count == 2
        assert window.total_events == 3

    def test_process_window(self, calculator):
        window = calculator.process_window(ORG, "billing", NOW - timedelta(days=30), NOW)
        assert window.case_count == 1
        assert window.avg_cycle_time == pytest.approx(3600)

    def test_unknown_entity_gets_zeroed_window(self, calculator):
        window = calculator.work_pattern_window(ORG, "nobody", NOW - timedelta(days=30), NOW)
        assert window.is_empty


class TestEntityDirectory:
    def test_departments_become_teams(self, db):
        directory = SQLiteEntityDirectory(db)
        directory.upsert_entities([person(ORG, "a", "eng"), person(ORG, "b", "ops"), person(ORG, "c")])
        teams = directory.list_teams(ORG)
        assert [t.entity_id for t in teams] == ["eng", "ops"]
        assert [m.entity_id for m in directory.team_members(ORG, "eng")] == ["a"]

    def test_list_people_filters_by_ids(self, db):
        directory = SQLiteEntityDirectory(db)
        directory.upsert_entities([person(ORG, "a"), person(ORG, "b"), person("org-2", "c")])
        assert [p.entity_id for p in directory.list_people(ORG)] == ["a", "b"]
        assert [p.entity_id for p in directory.list_people(ORG, ids=["b"])] == ["b"]
        assert directory.list_people(ORG, ids=[]) == []

    def test_upsert_updates_existing(self, db):
        directory = SQLiteEntityDirectory(db)
        directory.upsert_entities([person(ORG, "a", "eng")])
        directory.upsert_entities([person(ORG, "a", "ops")])
        assert directory.list_people(ORG)[0].department == "ops"
