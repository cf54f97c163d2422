"""
Baseline Calculator.

Turns raw events into metric windows. The build_* functions are pure and
take already-fetched events; BaselineCalculator does the I/O around them.
An entity with no events gets a zeroed window, never an error.
"""

import logging
import statistics
from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timedelta

from orgpulse.cancellation import CancellationToken
from orgpulse.models.base import as_utc
from orgpulse.models.events import (
    MESSAGE_EVENT_TYPES,
    PERSON_EVENT_TYPES,
    TEAM_EVENT_TYPES,
    CommunicationPair,
    DateRange,
    Entity,
    Event,
    ProcessWindow,
    TeamWindow,
    WorkPatternWindow,
    pair_key,
)
from orgpulse.sources import EntityDirectory, EventStore

logger = logging.getLogger(__name__)

LATE_NIGHT_HOURS = frozenset({22, 23, 0, 1, 2, 3, 4, 5})
WEEKEND_DAYS = frozenset({0, 6})  # Sunday, Saturday
BOTTLENECK_FACTOR = 1.5
MIN_STEP_OCCURRENCES = 3
ERROR_MARKERS = ("error", "fail")
REWORK_MARKERS = ("rework", "retry")


def analysis_ranges(now: datetime, lookback_days: int, baseline_days: int) -> tuple[DateRange, DateRange]:
    """
    Current window [now - lookback, now) and the baseline window immediately
    before it, [current.start - baseline, current.start).
    """
    now = as_utc(now)
    current_start = now - timedelta(days=lookback_days)
    baseline_start = current_start - timedelta(days=baseline_days)
    return DateRange(current_start, now), DateRange(baseline_start, current_start)


def weekday_sunday_first(ts: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (ts.weekday() + 1) % 7


def week_start(ts: datetime) -> str:
    """ISO date of the Monday starting ts's week."""
    return (ts.date() - timedelta(days=ts.weekday())).isoformat()


def _percentile(ordered: list[float], q: float) -> float:
    """Linear-interpolated percentile of an already sorted list."""
    if not ordered:
        return 0.0
    if len(ordered) == 1:
        return ordered[0]
    pos = q * (len(ordered) - 1)
    lower = int(pos)
    upper = min(lower + 1, len(ordered) - 1)
    frac = pos - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * frac


# =============================================================================
# PERSON
# =============================================================================


def build_work_pattern_window(
    person_id: str,
    events: Sequence[Event],
    start: datetime,
    end: datetime,
    business_hours: tuple[int, int] = (8, 18),
) -> WorkPatternWindow:
    business_start, business_end = business_hours
    window = WorkPatternWindow(entity_id=person_id, start=start, end=end)

    response_total = 0.0
    response_count = 0
    length_total = 0.0
    length_count = 0

    for event in events:
        ts = as_utc(event.timestamp)
        hour = ts.hour
        weekday = weekday_sunday_first(ts)

        window.total_events += 1
        window.events_by_hour[hour] = window.events_by_hour.get(hour, 0) + 1
        window.events_by_weekday[weekday] = window.events_by_weekday.get(weekday, 0) + 1
        week = week_start(ts)
        window.volume_by_week[week] = window.volume_by_week.get(week, 0) + 1

        if hour < business_start or hour >= business_end:
            window.after_hours_events += 1
        if weekday in WEEKEND_DAYS:
            window.weekend_events += 1
        if hour in LATE_NIGHT_HOURS:
            window.late_night_events += 1

        response = event.number("responseTimeMs")
        if response is not None and response > 0:
            response_total += response
            response_count += 1
        length = event.number("bodyLength")
        if length is not None and length > 0:
            length_total += length
            length_count += 1

    window.avg_response_time_ms = response_total / response_count if response_count else 0.0
    window.avg_message_length = length_total / length_count if length_count else 0.0
    return window


# =============================================================================
# PROCESS
# =============================================================================


def _ts(event: Event) -> datetime:
    return as_utc(event.timestamp)


def _has_marker(event_types: set[str], markers: tuple[str, ...]) -> bool:
    return any(m in t.lower() for t in event_types for m in markers)


def build_process_window(
    process_id: str,
    events: Sequence[Event],
    start: datetime,
    end: datetime,
) -> ProcessWindow:
    window = ProcessWindow(entity_id=process_id, start=start, end=end, total_events=len(events))
    if not events:
        return window

    by_case: dict[str, list[Event]] = defaultdict(list)
    for event in events:
        case_id = event.text("caseId")
        if case_id is not None:
            by_case[case_id].append(event)
    for case_events in by_case.values():
        case_events.sort(key=_ts)

    # Case-level statistics over cases with at least two events
    cycle_times: list[float] = []
    error_cases = 0
    rework_cases = 0
    for case_events in by_case.values():
        if len(case_events) < 2:
            continue
        cycle_times.append((_ts(case_events[-1]) - _ts(case_events[0])).total_seconds())
        types = {e.event_type for e in case_events}
        if _has_marker(types, ERROR_MARKERS):
            error_cases += 1
        if _has_marker(types, REWORK_MARKERS):
            rework_cases += 1

    window.case_count = len(cycle_times)
    if cycle_times:
        ordered = sorted(cycle_times)
        window.avg_cycle_time = statistics.fmean(ordered)
        window.median_cycle_time = statistics.median(ordered)
        window.p95_cycle_time = _percentile(ordered, 0.95)
        window.cycle_time_variance = statistics.variance(ordered) if len(ordered) > 1 else 0.0
        window.error_rate = error_cases / window.case_count
        window.rework_rate = rework_cases / window.case_count
    days = window.days
    window.throughput_per_day = window.case_count / days if days > 0 else 0.0

    # Step durations: time from each event to the next one in the same case
    occurrences: dict[str, int] = defaultdict(int)
    durations: dict[str, list[float]] = defaultdict(list)
    for case_events in by_case.values():
        for current, nxt in zip(case_events, case_events[1:] + [None]):
            occurrences[current.event_type] += 1
            if nxt is not None:
                durations[current.event_type].append((_ts(nxt) - _ts(current)).total_seconds())
    for step, count in occurrences.items():
        if count >= MIN_STEP_OCCURRENCES and durations[step]:
            window.avg_step_duration[step] = statistics.fmean(durations[step])
    if window.avg_step_duration:
        mean_step = statistics.fmean(window.avg_step_duration.values())
        window.bottleneck_steps = sorted(
            step for step, d in window.avg_step_duration.items() if d > mean_step * BOTTLENECK_FACTOR
        )

    # Skip rate: share of the process's known steps a case never touched
    all_steps = {e.event_type for case_events in by_case.values() for e in case_events}
    if by_case and all_steps:
        window.step_skip_rate = statistics.fmean(
            1.0 - len({e.event_type for e in case_events}) / len(all_steps)
            for case_events in by_case.values()
        )
    return window


# =============================================================================
# TEAM
# =============================================================================


def build_team_window(
    team_id: str,
    members: Sequence[Entity],
    events: Sequence[Event],
    start: datetime,
    end: datetime,
) -> TeamWindow:
    window = TeamWindow(entity_id=team_id, start=start, end=end, member_count=len(members))
    if len(members) < 2:
        return window

    emails = {m.entity_id: m.email for m in members}
    directional: dict[tuple[str, str], dict] = {}
    for event in events:
        sender = event.actor_id
        recipient = event.text("recipientId")
        if sender not in emails or recipient not in emails or sender == recipient:
            continue
        if event.event_type not in TEAM_EVENT_TYPES:
            continue
        stats = directional.setdefault(
            (sender, recipient),
            {"messages": 0, "meetings": 0, "responses": [], "cc": 0, "direct": 0},
        )
        if event.event_type in MESSAGE_EVENT_TYPES:
            stats["messages"] += 1
        else:
            stats["meetings"] += 1
        response = event.number("responseTimeMs")
        if response is not None and response > 0:
            stats["responses"].append(response)
        if event.flag("hasManagerCC"):
            stats["cc"] += 1
        if event.flag("isDirect"):
            stats["direct"] += 1

    pairs: dict[tuple[str, str], CommunicationPair] = {}
    for (sender, recipient), stats in directional.items():
        key = pair_key(sender, recipient)
        pair = pairs.get(key)
        if pair is None:
            pair = CommunicationPair(
                person1_id=key[0],
                person2_id=key[1],
                person1_email=emails[key[0]],
                person2_email=emails[key[1]],
            )
            pairs[key] = pair
        avg_response = statistics.fmean(stats["responses"]) if stats["responses"] else 0.0
        if sender == pair.person1_id:
            pair.avg_response_time_1to2 = avg_response
        else:
            pair.avg_response_time_2to1 = avg_response
        pair.message_count += stats["messages"]
        pair.meeting_count += stats["meetings"]
        pair.manager_cc_count += stats["cc"]
        pair.direct_count += stats["direct"]

    window.pairs = [pairs[k] for k in sorted(pairs)]
    if not window.pairs:
        return window

    n_pairs = len(window.pairs)
    total_messages = sum(p.message_count for p in window.pairs)
    total_interactions = sum(p.total_interactions for p in window.pairs)
    total_cc = sum(p.manager_cc_count for p in window.pairs)
    total_response = sum(p.avg_response_time_1to2 + p.avg_response_time_2to1 for p in window.pairs)
    possible = len(members) * (len(members) - 1) / 2

    window.total_events = total_interactions
    window.avg_intra_team_messages = total_messages / n_pairs
    window.avg_response_time = total_response / (n_pairs * 2)
    window.management_escalation_rate = total_cc / total_interactions if total_interactions else 0.0
    window.communication_density = n_pairs / possible if possible else 0.0
    return window


# =============================================================================
# CALCULATOR
# =============================================================================


class BaselineCalculator:
    """Fetches events for one entity and window and builds its metrics."""

    def __init__(self, event_store: EventStore, directory: EntityDirectory):
        self.event_store = event_store
        self.directory = directory

    def work_pattern_window(
        self,
        organization_id: str,
        person_id: str,
        start: datetime,
        end: datetime,
        business_hours: tuple[int, int] = (8, 18),
        token: CancellationToken | None = None,
    ) -> WorkPatternWindow:
        events = self.event_store.query_events(
            organization_id, person_id, start, end, event_types=PERSON_EVENT_TYPES, token=token
        )
        return build_work_pattern_window(person_id, events, start, end, business_hours)

    def process_window(
        self,
        organization_id: str,
        process_id: str,
        start: datetime,
        end: datetime,
        token: CancellationToken | None = None,
    ) -> ProcessWindow:
        events = self.event_store.query_process_events(organization_id, process_id, start, end, token=token)
        return build_process_window(process_id, events, start, end)

    def team_window(
        self,
        organization_id: str,
        team_id: str,
        start: datetime,
        end: datetime,
        token: CancellationToken | None = None,
        members: Sequence[Entity] | None = None,
    ) -> TeamWindow:
        if members is None:
            members = self.directory.team_members(organization_id, team_id, token=token)
        if len(members) < 2:
            logger.debug("Team %s has %d member(s), nothing to measure", team_id, len(members))
            return build_team_window(team_id, members, [], start, end)
        events = self.event_store.query_interactions(
            organization_id,
            [m.entity_id for m in members],
            start,
            end,
            event_types=TEAM_EVENT_TYPES,
            token=token,
        )
        return build_team_window(team_id, members, events, start, end)
