"""
orgpulse — Base Models

ID generation, shared enums, JSON and datetime helpers.
"""

import json
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

# =============================================================================
# ID GENERATION
# =============================================================================


def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix."""
    uid = uuid.uuid4().hex[:16]
    if prefix:
        return f"{prefix}_{uid}"
    return uid


# =============================================================================
# COMMON ENUMS
# =============================================================================


class EntityType(StrEnum):
    PERSON = "person"
    PROCESS = "process"
    TEAM = "team"


class DetectorFamily(StrEnum):
    """Detector family; one per entity type."""

    BURNOUT = "burnout"
    DEGRADATION = "degradation"
    CONFLICT = "conflict"


FAMILY_ENTITY_TYPE: dict[DetectorFamily, EntityType] = {
    DetectorFamily.BURNOUT: EntityType.PERSON,
    DetectorFamily.DEGRADATION: EntityType.PROCESS,
    DetectorFamily.CONFLICT: EntityType.TEAM,
}


class Severity(StrEnum):
    """Indicator and insight severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class Trend(StrEnum):
    STABLE = "stable"
    INCREASING = "increasing"
    DECREASING = "decreasing"


# =============================================================================
# JSON HELPERS
# =============================================================================


def json_loads_safe(data: str | None, default: Any = None) -> Any:
    """Load JSON, returning `default` for None or malformed input."""
    if data is None:
        return default
    try:
        return json.loads(data)
    except (json.JSONDecodeError, TypeError):
        return default


def json_dumps(data: Any) -> str:
    return json.dumps(data, default=str, sort_keys=True)


# =============================================================================
# DATETIME HELPERS
# =============================================================================


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_iso(dt: datetime) -> str:
    """
    Fixed-width UTC ISO string.

    Stored timestamps are compared as text, so every one must carry the same
    offset and precision.
    """
    return as_utc(dt).isoformat(timespec="microseconds")


def now_iso() -> str:
    return to_iso(utcnow())


def parse_datetime(dt_str: str | None) -> datetime | None:
    """Parse an ISO datetime string into an aware UTC datetime."""
    if dt_str is None:
        return None
    try:
        return as_utc(datetime.fromisoformat(dt_str.replace("Z", "+00:00")))
    except (ValueError, AttributeError):
        return None
