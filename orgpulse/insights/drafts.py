"""
Insight drafts built from risk assessments.

Title, description, severity and metadata per family.
"""

from orgpulse.models.base import DetectorFamily, Severity
from orgpulse.models.indicators import Indicator, RiskAssessment
from orgpulse.models.insights import InsightCategory, InsightDraft, InsightType

FAMILY_INSIGHT: dict[DetectorFamily, tuple[InsightType, InsightCategory, str]] = {
    DetectorFamily.BURNOUT: (InsightType.BURNOUT_RISK, InsightCategory.PEOPLE, "Burnout Risk"),
    DetectorFamily.DEGRADATION: (
        InsightType.PROCESS_DEGRADATION,
        InsightCategory.PROCESS,
        "Process Degradation",
    ),
    DetectorFamily.CONFLICT: (InsightType.TEAM_CONFLICT, InsightCategory.TEAM, "Team Conflict"),
}

# Family level rank -> insight severity
RANK_SEVERITY = (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)

FAILURE_RISK_MENTION = 0.3


def _top(indicators: list[Indicator], n: int) -> list[str]:
    ranked = sorted(indicators, key=lambda i: i.score, reverse=True)
    return [i.description for i in ranked[:n]]


def describe_burnout(assessment: RiskAssessment) -> str:
    parts = [f"Risk score: {assessment.overall_score:.0f}/100"]
    if assessment.indicators:
        parts.append("Key indicators: " + "; ".join(_top(assessment.indicators, 3)))
    parts.append(f"Confidence: {assessment.confidence * 100:.0f}%")
    return ". ".join(parts)


def describe_degradation(assessment: RiskAssessment) -> str:
    parts = [f"Health score: {100 - assessment.overall_score:.0f}/100"]
    forecast = assessment.forecast
    if forecast is not None:
        if forecast.failure_risk > FAILURE_RISK_MENTION:
            parts.append(f"Failure risk: {forecast.failure_risk * 100:.0f}%")
        if forecast.time_to_failure is not None:
            parts.append(f"Estimated time to failure: {forecast.time_to_failure}")
    if assessment.indicators:
        parts.append("Issues: " + "; ".join(_top(assessment.indicators, 2)))
    return ". ".join(parts)


def describe_conflict(assessment: RiskAssessment) -> str:
    parts = [f"Conflict score: {assessment.overall_score:.0f}/100"]
    if assessment.relationships:
        parts.append(f"{len(assessment.relationships)} relationship(s) affected")
    if assessment.indicators:
        parts.append("Patterns: " + "; ".join(_top(assessment.indicators, 2)))
    return ". ".join(parts)


DESCRIBERS = {
    DetectorFamily.BURNOUT: describe_burnout,
    DetectorFamily.DEGRADATION: describe_degradation,
    DetectorFamily.CONFLICT: describe_conflict,
}


def draft_from_assessment(assessment: RiskAssessment) -> InsightDraft:
    insight_type, category, label = FAMILY_INSIGHT[assessment.family]
    metadata = {
        "entity_name": assessment.entity_name,
        "risk_level": assessment.risk_level,
        "indicators": [i.to_dict() for i in assessment.indicators],
        "analysis_window": assessment.analysis_window.to_dict(),
        "baseline_window": assessment.baseline_window.to_dict(),
        "confidence": round(assessment.confidence, 4),
    }
    if assessment.family == DetectorFamily.DEGRADATION and assessment.forecast is not None:
        metadata["forecast"] = assessment.forecast.to_dict()
    if assessment.family == DetectorFamily.CONFLICT:
        metadata["relationships"] = [r.to_dict() for r in assessment.relationships]

    return InsightDraft(
        organization_id=assessment.organization_id,
        type=insight_type,
        category=category,
        severity=RANK_SEVERITY[assessment.level_rank],
        title=f"{label}: {assessment.entity_name}",
        description=DESCRIBERS[assessment.family](assessment),
        entity_type=assessment.entity_type,
        entity_id=assessment.entity_id,
        score=round(assessment.overall_score, 2),
        metadata=metadata,
        recommended_actions=list(assessment.recommended_actions),
    )
