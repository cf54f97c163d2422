from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "ORGPULSE_HOME"
APP_ENV_DB = "ORGPULSE_DB"
APP_ENV_THRESHOLDS = "ORGPULSE_THRESHOLDS"


def package_root() -> Path:
    """Directory holding the orgpulse package (ships thresholds.yaml)."""
    return Path(__file__).parent.resolve()


def app_home() -> Path:
    """
    User-writable home for orgpulse.
    Override with ORGPULSE_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".orgpulse").resolve()


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical DB path.

    Resolution order:
    1. ORGPULSE_DB env var (explicit override)
    2. ~/.orgpulse/data/orgpulse.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "orgpulse.db"


def thresholds_path() -> Path:
    """Threshold overrides file; defaults to the copy bundled with the package."""
    if os.environ.get(APP_ENV_THRESHOLDS):
        return Path(os.environ[APP_ENV_THRESHOLDS]).expanduser().resolve()
    return package_root() / "thresholds.yaml"
