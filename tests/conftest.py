"""
Test configuration — repo root on sys.path, isolated orgpulse home and
shared database fixtures.

IMPORTANT: The home/db environment is redirected for the whole session so
no test can read or write ~/.orgpulse.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import orgpulse and tests.fixtures
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from orgpulse.database import Database  # noqa: E402
from orgpulse.scheduler import build_pipeline  # noqa: E402


@pytest.fixture(autouse=True, scope="session")
def isolated_home(tmp_path_factory):
    """Point ORGPULSE_HOME and ORGPULSE_DB at a session temp directory."""
    home = tmp_path_factory.mktemp("orgpulse-home")
    patcher = pytest.MonkeyPatch()
    patcher.setenv("ORGPULSE_HOME", str(home))
    patcher.setenv("ORGPULSE_DB", str(home / "orgpulse.db"))
    patcher.delenv("ORGPULSE_THRESHOLDS", raising=False)
    yield home
    patcher.undo()


@pytest.fixture
def db(tmp_path) -> Database:
    database = Database(tmp_path / "test.db")
    database.init_schema()
    return database


@pytest.fixture
def pipeline(tmp_path):
    """Fully wired pipeline on a fresh database, notifications in dry-run mode."""
    return build_pipeline(tmp_path / "pipeline.db", dry_run=True)
