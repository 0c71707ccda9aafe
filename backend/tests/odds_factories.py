"""Builders for runners, odds maps and snapshots used across the test suite."""

from datetime import datetime, timedelta
from typing import Optional

from models.runner import Runner, Snapshot

EVENT_1330 = "01-05-2024 13:30 Ascot 1m Hcap"
EVENT_1400 = "01-05-2024 14:00 Ascot 6f Mdn"
T0 = datetime(2024, 5, 1, 9, 0, 0)


def runner(
    runner_id: int,
    odds: Optional[float],
    name: Optional[str] = None,
    event: str = EVENT_1330,
) -> Runner:
    return Runner(
        runner_id=runner_id,
        name=name or f"Horse {runner_id}",
        event=event,
        odds=odds,
    )


def odds_map(*runners: Runner) -> dict[int, Runner]:
    return {r.runner_id: r for r in runners}


def snapshot(minutes: int, *runners: Runner) -> Snapshot:
    return Snapshot(timestamp=T0 + timedelta(minutes=minutes), runners=odds_map(*runners))
