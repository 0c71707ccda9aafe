import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
import asyncio

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from services.odds_tracker import PollResult
from workers import odds_poller


def _tracker(result=None):
    tracker = MagicMock()
    tracker.poll_once = AsyncMock(return_value=result or PollResult(status="completed", runners=3))
    return tracker


@pytest.mark.asyncio
async def test_loop_polls_immediately_then_sleeps_for_interval(monkeypatch):
    tracker = _tracker()
    poller = odds_poller.OddsPoller(tracker, interval_seconds=120, run_immediately=True)
    sleep_mock = AsyncMock(side_effect=asyncio.CancelledError())
    monkeypatch.setattr(odds_poller.asyncio, "sleep", sleep_mock)

    with pytest.raises(asyncio.CancelledError):
        await poller._run_loop()

    tracker.poll_once.assert_awaited_once()
    assert poller.cycles_run == 1
    delay = sleep_mock.await_args.args[0]
    assert 0 <= delay <= 120


@pytest.mark.asyncio
async def test_loop_waits_one_interval_when_not_polling_on_startup(monkeypatch):
    tracker = _tracker()
    poller = odds_poller.OddsPoller(tracker, interval_seconds=30, run_immediately=False)
    sleep_mock = AsyncMock(side_effect=asyncio.CancelledError())
    monkeypatch.setattr(odds_poller.asyncio, "sleep", sleep_mock)

    with pytest.raises(asyncio.CancelledError):
        await poller._run_loop()

    tracker.poll_once.assert_not_awaited()
    sleep_mock.assert_awaited_once_with(30)


@pytest.mark.asyncio
async def test_loop_keeps_going_after_failed_cycles(monkeypatch):
    tracker = _tracker(PollResult(status="fetch_failed", error="HTTP 503"))
    poller = odds_poller.OddsPoller(tracker, interval_seconds=60, run_immediately=True)
    sleep_mock = AsyncMock(side_effect=[None, None, asyncio.CancelledError()])
    monkeypatch.setattr(odds_poller.asyncio, "sleep", sleep_mock)

    with pytest.raises(asyncio.CancelledError):
        await poller._run_loop()

    assert tracker.poll_once.await_count == 3
    assert poller.cycles_run == 3


@pytest.mark.asyncio
async def test_overrunning_cycle_triggers_next_without_delay(monkeypatch):
    tracker = _tracker()
    poller = odds_poller.OddsPoller(tracker, interval_seconds=10, run_immediately=True)
    clock = iter([100.0, 125.0])
    monkeypatch.setattr(odds_poller, "time", SimpleNamespace(monotonic=lambda: next(clock)))
    sleep_mock = AsyncMock(side_effect=asyncio.CancelledError())
    monkeypatch.setattr(odds_poller.asyncio, "sleep", sleep_mock)

    with pytest.raises(asyncio.CancelledError):
        await poller._run_loop()

    sleep_mock.assert_awaited_once_with(0.0)


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_cancels_task():
    tracker = _tracker()
    poller = odds_poller.OddsPoller(tracker, interval_seconds=3600, run_immediately=False)

    await poller.start()
    task = poller._task
    await poller.start()

    assert poller.is_running
    assert poller._task is task

    await poller.stop()

    assert not poller.is_running
    assert poller._task is None
    assert task.cancelled()
    tracker.poll_once.assert_not_awaited()
