"""
Team conflict: communication-graph checks per team, plus the member pairs
whose own signals point at friction.
"""

from collections.abc import Sequence

from orgpulse.models.base import DetectorFamily, Trend
from orgpulse.models.events import TeamWindow
from orgpulse.models.indicators import AffectedRelationship, Indicator

from .checks import (
    CheckDefinition,
    CheckReading,
    CheckThresholds,
    Detector,
    ThresholdSet,
    fixed_trend,
    pct,
    relative_change,
)

DEFAULT_MIN_INTERACTIONS = 5
SILO_DENSITY_CEILING = 0.3
SILO_MIN_MEMBERS = 3
LOW_DIRECT_RATIO = 0.4
CC_DIRECT_RATIO = 0.5
RELATIONSHIP_MIN_SCORE = 20.0
MAX_MEDIATED_RELATIONSHIPS = 3

CONFLICT_SENSITIVITY: dict[str, dict[str, dict[str, float]]] = {
    "low": {
        "communication_reduction": {"change": 0.25},
        "management_escalation": {"rate": 0.15},
        "response_asymmetry": {"ratio": 2.0},
    },
    "medium": {
        "communication_reduction": {"change": 0.35},
        "management_escalation": {"rate": 0.12},
        "response_asymmetry": {"ratio": 1.75},
    },
    "high": {
        "communication_reduction": {"change": 0.20},
        "management_escalation": {"rate": 0.10},
        "response_asymmetry": {"ratio": 1.5},
    },
}


def _communication_reduction(current: TeamWindow, baseline: TeamWindow, t: CheckThresholds):
    if baseline.avg_intra_team_messages <= 0:
        return None
    reduction = (
        baseline.avg_intra_team_messages - current.avg_intra_team_messages
    ) / baseline.avg_intra_team_messages
    parties: list[str] = []
    for pair in current.pairs:
        before = baseline.pair(pair.person1_id, pair.person2_id)
        if before is not None and pair.message_count < before.message_count * 0.5:
            parties.extend(pair.parties)
    return CheckReading(
        data_points=len(current.pairs),
        change=reduction,
        relative_change=-reduction,
        current_value=current.avg_intra_team_messages,
        baseline_value=baseline.avg_intra_team_messages,
        involved_parties=parties,
    )


def _management_escalation(current: TeamWindow, baseline: TeamWindow, t: CheckThresholds):
    rate = current.management_escalation_rate
    limit = t.rate if t.rate is not None else 0.12
    parties = [party for p in current.pairs if p.escalation_rate > limit for party in p.parties]
    return CheckReading(
        data_points=sum(p.manager_cc_count for p in current.pairs),
        rate=rate,
        change=relative_change(rate, baseline.management_escalation_rate),
        current_value=rate,
        baseline_value=baseline.management_escalation_rate,
        involved_parties=parties,
    )


def _response_asymmetry(current: TeamWindow, baseline: TeamWindow, t: CheckThresholds):
    if not current.pairs:
        return None
    ratio = t.param("ratio", 1.75)
    skewed = [p for p in current.pairs if (p.response_asymmetry or 0.0) > ratio]
    return CheckReading(
        data_points=len(skewed),
        rate=len(skewed) / len(current.pairs),
        current_value=float(len(skewed)),
        involved_parties=[party for p in skewed for party in p.parties],
        details={"count": len(skewed)},
    )


def _team_siloing(current: TeamWindow, baseline: TeamWindow, t: CheckThresholds):
    density = current.communication_density
    if density >= SILO_DENSITY_CEILING or current.member_count <= SILO_MIN_MEMBERS:
        return None
    base = baseline.communication_density
    drop = (base - density) / base if base > 0 else 0.0
    return CheckReading(
        data_points=len(current.pairs),
        rate=1.0 - density,
        change=drop,
        relative_change=-drop,
        current_value=density,
        baseline_value=base,
        details={"density_pct": pct(density)},
    )


def _cc_overuse(current: TeamWindow, baseline: TeamWindow, t: CheckThresholds):
    if not current.pairs:
        return None
    min_interactions = t.param("min_interactions", DEFAULT_MIN_INTERACTIONS)
    heavy = [
        p
        for p in current.pairs
        if p.total_interactions > min_interactions and p.direct_count / p.total_interactions < CC_DIRECT_RATIO
    ]
    return CheckReading(
        data_points=len(heavy),
        rate=len(heavy) / len(current.pairs),
        current_value=float(len(heavy)),
        involved_parties=[party for p in heavy for party in p.parties],
    )


def _escalation_trend(reading: CheckReading) -> Trend:
    return Trend.INCREASING if (reading.change or 0) > 0.1 else Trend.STABLE


def _siloing_trend(reading: CheckReading) -> Trend:
    return Trend.DECREASING if (reading.change or 0) > 0.1 else Trend.STABLE


CONFLICT_CHECKS: tuple[CheckDefinition, ...] = (
    CheckDefinition(
        type="communication_reduction",
        weight=1.3,
        measure=_communication_reduction,
        score=lambda r: r.change * 150,
        description="Intra-team communication has decreased by {change_pct}%",
        defaults=CheckThresholds(change=0.35),
        trend=fixed_trend(Trend.DECREASING),
        recommendations=(
            "Schedule team-building activities to rebuild communication",
            "Consider restructuring meeting cadences to encourage interaction",
        ),
    ),
    CheckDefinition(
        type="management_escalation",
        weight=1.5,
        measure=_management_escalation,
        score=lambda r: r.rate * 400 + r.change * 50,
        description="{rate_pct}% of communications CC management",
        defaults=CheckThresholds(rate=0.12),
        trend=_escalation_trend,
        recommendations=(
            "Train team on conflict resolution techniques",
            "Clarify decision-making authority and escalation paths",
        ),
    ),
    CheckDefinition(
        type="response_asymmetry",
        weight=1.0,
        measure=_response_asymmetry,
        score=lambda r: r.rate * 200,
        description="{count} relationship(s) show significant response time imbalance",
        defaults=CheckThresholds(rate=0.0, params={"ratio": 1.75}),
        trend=fixed_trend(Trend.STABLE),
        recommendations=(
            "Address potential power imbalances or workload issues",
            "Facilitate direct conversations between affected parties",
        ),
    ),
    CheckDefinition(
        type="team_siloing",
        weight=1.1,
        measure=_team_siloing,
        score=lambda r: r.rate * 80,
        description="Only {density_pct}% of possible team connections are active",
        defaults=CheckThresholds(rate=0.8, change=0.2),
        trend=_siloing_trend,
        recommendations=(
            "Create cross-functional projects to bridge gaps",
            "Review team structure for collaboration barriers",
        ),
    ),
    CheckDefinition(
        type="cc_overuse",
        weight=0.9,
        measure=_cc_overuse,
        score=lambda r: r.rate * 150,
        description="{rate_pct}% of relationships show excessive CC usage",
        defaults=CheckThresholds(rate=0.3),
        trend=fixed_trend(Trend.STABLE),
        recommendations=(
            "Establish clearer communication norms",
            "Address underlying trust issues in the team",
        ),
    ),
)


def affected_relationships(
    current: TeamWindow,
    baseline: TeamWindow,
    thresholds: ThresholdSet,
    min_interactions: float = DEFAULT_MIN_INTERACTIONS,
) -> list[AffectedRelationship]:
    """Member pairs whose summed pair score exceeds 20, highest first."""
    reduction_limit = thresholds.checks["communication_reduction"].change or 0.35
    escalation_limit = thresholds.checks["management_escalation"].rate or 0.12
    ratio_limit = thresholds.checks["response_asymmetry"].param("ratio", 1.75)

    relationships: list[AffectedRelationship] = []
    for pair in current.pairs:
        total = pair.total_interactions
        if total < min_interactions:
            continue
        notes: list[str] = []
        score = 0.0

        before = baseline.pair(pair.person1_id, pair.person2_id)
        if before is not None and before.message_count > min_interactions:
            reduction = (before.message_count - pair.message_count) / before.message_count
            if reduction > reduction_limit:
                notes.append(f"Communication reduced by {pct(reduction)}%")
                score += reduction * 50

        asymmetry = pair.response_asymmetry
        if asymmetry is not None and asymmetry > ratio_limit:
            notes.append(f"Response time asymmetry: {asymmetry:.1f}x")
            score += (asymmetry - 1) * 20

        escalation = pair.manager_cc_count / total
        if escalation > escalation_limit:
            notes.append(f"High escalation rate: {pct(escalation)}%")
            score += escalation * 100

        direct = pair.direct_count / total
        if direct < LOW_DIRECT_RATIO:
            notes.append(f"Low direct communication: {pct(direct)}%")
            score += (1 - direct) * 30

        if notes and score > RELATIONSHIP_MIN_SCORE:
            relationships.append(
                AffectedRelationship(
                    person1_id=pair.person1_id,
                    person2_id=pair.person2_id,
                    person1_email=pair.person1_email,
                    person2_email=pair.person2_email,
                    score=min(100.0, score),
                    indicators=notes,
                )
            )
    relationships.sort(key=lambda r: r.score, reverse=True)
    return relationships


class ConflictDetector(Detector):
    family = DetectorFamily.CONFLICT
    checks = CONFLICT_CHECKS
    default_lookback_days = 30
    default_baseline_days = 90
    default_min_data_points = 5
    sensitivity_tables = CONFLICT_SENSITIVITY
    urgency = {
        "critical": (
            "URGENT: Consider immediate management intervention",
            "Evaluate if temporary team restructuring is needed",
        ),
        "conflict": ("Schedule a team retrospective within the next 2 weeks", None),
    }

    def settings(self, overrides=None, **options):
        base = {"min_interactions": DEFAULT_MIN_INTERACTIONS}
        return super().settings({**base, **(overrides or {})}, **options)

    def extra_recommendations(
        self,
        indicators: Sequence[Indicator],
        level: str,
        relationships: Sequence[AffectedRelationship] = (),
        **context,
    ) -> list[str]:
        if not relationships:
            return []
        if len(relationships) <= MAX_MEDIATED_RELATIONSHIPS:
            return [f"Consider mediated discussions for {len(relationships)} specific relationship(s)"]
        return ["Team-wide intervention may be needed given multiple affected relationships"]

    def confidence(self, current: TeamWindow, baseline: TeamWindow, min_data_points: int) -> float:
        pairs, base_pairs = len(current.pairs), len(baseline.pairs)
        current_score = min(1.0, pairs / 10) * 0.4
        baseline_score = min(1.0, base_pairs / 15) * 0.4
        return current_score + baseline_score + (0.2 if pairs >= 2 and base_pairs >= 2 else 0.0)
