"""
Scenario test infrastructure.

End-to-end paths through a real pipeline on a temp database:
seed events -> detection run -> insights -> alerts -> dispatch (dry run).
"""

from datetime import UTC, datetime, timedelta

import pytest

from tests.fixtures import burnout_history, case_events, person, process


@pytest.fixture
def seed_person(pipeline):
    """Register a person and their ten-events-a-weekday history."""

    def _seed(org: str, person_id: str, current_after_hours: int = 3, baseline_after_hours: int = 1):
        pipeline.directory.upsert_entities([person(org, person_id)])
        pipeline.events.add_events(
            burnout_history(
                org,
                person_id,
                current_after_hours=current_after_hours,
                baseline_after_hours=baseline_after_hours,
            )
        )

    return _seed


@pytest.fixture
def seed_process(pipeline):
    """
    Register a process with twelve baseline cases of 48h and twelve recent
    cases whose approval step takes `recent_approval_hours`.
    """

    def _seed(org: str, process_id: str, recent_approval_hours: float = 72.0):
        pipeline.directory.upsert_entities([process(org, process_id)])
        events = []
        for i in range(12):
            start = datetime(2024, 4, 1, 9, 0, tzinfo=UTC) + timedelta(days=i)
            events += case_events(
                org, process_id, f"b-{i}", start, [("created", 24), ("approved", 24), ("completed", 0)]
            )
        for i in range(12):
            start = datetime(2024, 5, 21, 9, 0, tzinfo=UTC) + timedelta(days=i // 2)
            events += case_events(
                org,
                process_id,
                f"c-{i}",
                start,
                [("created", 24), ("approved", recent_approval_hours), ("completed", 0)],
            )
        pipeline.events.add_events(events)

    return _seed
