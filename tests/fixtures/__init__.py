"""
Test fixtures for deterministic testing.

Builders for events, entities, assessments, insights and subscriptions,
all anchored on a fixed NOW.
"""

from .builders import (
    BURNOUT_BASELINE,
    BURNOUT_CURRENT,
    NOW,
    assessment,
    burnout_history,
    case_events,
    daily_events,
    draft,
    event,
    indicator,
    insight,
    interactions,
    person,
    process,
    subscription,
    webhook_channel,
)

__all__ = [
    "BURNOUT_BASELINE",
    "BURNOUT_CURRENT",
    "NOW",
    "assessment",
    "burnout_history",
    "case_events",
    "daily_events",
    "draft",
    "event",
    "indicator",
    "insight",
    "interactions",
    "person",
    "process",
    "subscription",
    "webhook_channel",
]
