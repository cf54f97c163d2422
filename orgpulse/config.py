"""
Centralized configuration for orgpulse.

All values that vary by deployment belong here.
Override via environment variables where marked.
"""

import logging
import os
from pathlib import Path

import yaml

from orgpulse import paths

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("ORGPULSE_LOG_LEVEL", "INFO")
"""Root log level for the CLI and workers."""

LOG_JSON: str = os.environ.get("ORGPULSE_LOG_JSON", "auto")
"""'true' / 'false' / 'auto' (JSON when stderr is not a TTY)."""

# ============================================================
# Storage
# ============================================================

DB_TIMEOUT_SECONDS: float = _env_float("ORGPULSE_DB_TIMEOUT_SECONDS", 30.0)
"""Upper bound for sqlite busy waits; a cancellation deadline may shorten it."""

# ============================================================
# Insights
# ============================================================

INSIGHT_RECENCY_DAYS: int = _env_int("ORGPULSE_INSIGHT_RECENCY_DAYS", 7)
"""A detection within this many days updates the existing insight instead of inserting."""

INSIGHT_MIN_LEVEL_RANK: int = _env_int("ORGPULSE_INSIGHT_MIN_LEVEL_RANK", 1)
"""Lowest risk-level rank (0-3) persisted as an insight. 1 = moderate/warning/tension."""

# ============================================================
# Alerts / notifications
# ============================================================

APP_URL: str = os.environ.get("ORGPULSE_APP_URL", "https://app.example.com")
"""Base URL used to build alert action links."""

PENDING_ALERT_BATCH: int = _env_int("ORGPULSE_PENDING_ALERT_BATCH", 50)
"""Pending alerts picked up per dispatch pass."""

NOTIFY_MAX_WORKERS: int = _env_int("ORGPULSE_NOTIFY_MAX_WORKERS", 4)
"""Concurrent channel sends per alert."""

NOTIFY_TIMEOUT_SECONDS: float = _env_float("ORGPULSE_NOTIFY_TIMEOUT_SECONDS", 10.0)
"""Per-send timeout; a hanging channel is recorded as failed after this."""

SMTP_HOST: str | None = os.environ.get("ORGPULSE_SMTP_HOST")
SMTP_PORT: int = _env_int("ORGPULSE_SMTP_PORT", 587)
SMTP_USER: str | None = os.environ.get("ORGPULSE_SMTP_USER")
SMTP_PASSWORD: str | None = os.environ.get("ORGPULSE_SMTP_PASSWORD")
EMAIL_FROM: str = os.environ.get("ORGPULSE_EMAIL_FROM", "alerts@orgpulse.local")

# ============================================================
# Scheduler
# ============================================================

DETECTION_MAX_WORKERS: int = _env_int("ORGPULSE_DETECTION_MAX_WORKERS", 3)
"""Detector families run concurrently within one organization run."""

ORG_MAX_WORKERS: int = _env_int("ORGPULSE_ORG_MAX_WORKERS", 4)
"""Organizations processed concurrently by DetectionRunner.run_many."""


# ============================================================
# Threshold file
# ============================================================


def load_thresholds(path: Path | None = None) -> dict:
    """
    Load detector threshold overrides from YAML.

    Returns an empty dict when the file is missing or unreadable; the
    built-in defaults on each check definition then apply unchanged.
    """
    path = path or paths.thresholds_path()
    if not path.exists():
        logger.debug("Threshold file not found at %s, using built-in defaults", path)
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to load thresholds from %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("Threshold file %s must contain a mapping, got %s", path, type(data).__name__)
        return {}
    return data


def family_overrides(family: str, thresholds: dict | None = None) -> dict:
    """Return the override block for one detector family ('burnout', ...)."""
    if thresholds is None:
        thresholds = load_thresholds()
    block = thresholds.get(family) or {}
    return block if isinstance(block, dict) else {}
