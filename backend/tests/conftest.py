"""Shared fixtures for odds tracker tests."""

import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from unittest.mock import AsyncMock

import pytest

from odds_factories import runner, snapshot
from services.snapshot_store import SnapshotStore


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def snapshot_dir(tmp_path):
    return tmp_path / "odds_snapshots"


@pytest.fixture
def store(snapshot_dir):
    return SnapshotStore(snapshot_dir)


@pytest.fixture
def seeded_store(store):
    """Three polls of one race: Horse 1 shortens, Horse 2 is withdrawn."""
    store.append(snapshot(0, runner(1, 3.0), runner(2, 5.0), runner(3, 8.0)))
    store.append(snapshot(2, runner(1, 2.8), runner(2, 5.0), runner(3, 8.0)))
    store.append(snapshot(4, runner(1, 2.8), runner(2, None), runner(3, 9.0)))
    return store


# ---------------------------------------------------------------------------
# Odds source fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_odds_source():
    """A fully-mocked odds source; set fetch_current_odds.side_effect per test."""
    source = AsyncMock()
    source.fetch_current_odds = AsyncMock(return_value={})
    source.close = AsyncMock()
    return source
