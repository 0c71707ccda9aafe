"""Market analytics: per-runner movement/status and per-race overround.

Inputs are the five maps making up a market state (see
``services.odds_tracker.MarketState``). Output groups are keyed by the race
start time shifted into the display timezone ("HH:MM"), sorted ascending;
runners inside a group keep the iteration order of the initial snapshot.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from models.analytics import (
    MovementType,
    RaceGroup,
    RunnerAnalytics,
    RunnerData,
    RunnerStatus,
)
from models.runner import OddsMap, Runner
from services.ledger import odds_delta

UNPARSED_GROUP = "Unparsed"
_EVENT_TIME_FORMAT = "%d-%m-%Y %H:%M"
_EVENT_TIME_PREFIX_LEN = 16
# Zero-padded "dd-MM-yyyy HH:mm" only; strptime alone accepts "1-5-2024 9:30".
_EVENT_TIME_PATTERN = re.compile(r"\d{2}-\d{2}-\d{4} \d{2}:\d{2}\Z")
_GROUP_KEY_FORMAT = "%H:%M"
_TWO_PLACES = Decimal("0.01")


def _decimal(value: float) -> Decimal:
    # str() keeps the shortest repr, so 2.1 becomes Decimal("2.1") rather than
    # the binary expansion 2.100000000000000088817841970012523...
    return Decimal(str(value))


def total_movement(initial_odds: float, final_odds: float) -> float:
    """final - initial rounded half-up to 2dp using decimal arithmetic."""
    delta = _decimal(final_odds) - _decimal(initial_odds)
    return float(delta.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def event_time_key(event: str, offset_hours: int = 1) -> str:
    """Group key for a race: its start time plus ``offset_hours`` as HH:MM."""
    prefix = (event or "")[:_EVENT_TIME_PREFIX_LEN]
    if not _EVENT_TIME_PATTERN.match(prefix):
        return UNPARSED_GROUP
    try:
        start = datetime.strptime(prefix, _EVENT_TIME_FORMAT)
    except ValueError:
        return UNPARSED_GROUP
    return (start + timedelta(hours=offset_hours)).strftime(_GROUP_KEY_FORMAT)


def compute_overround(runners: list[RunnerAnalytics]) -> float:
    """Percentage points by which implied probabilities exceed 100%.

    Only RUNNER entries with a positive display price count; a race with no
    such entries reports 0 rather than -100.
    """
    implied = [
        1.0 / r.runner.odds
        for r in runners
        if r.status is RunnerStatus.RUNNER and r.runner.odds > 0
    ]
    if not implied:
        return 0.0
    return sum(implied) * 100.0 - 100.0


def _odds(runner: Optional[Runner]) -> Optional[float]:
    return runner.odds if runner is not None else None


def _recent_movement(
    runner_id: int,
    previous_odds: OddsMap,
    current_odds: OddsMap,
    last_recorded_movement: dict[int, float],
) -> tuple[float, MovementType]:
    current = _odds(current_odds.get(runner_id))
    previous = _odds(previous_odds.get(runner_id))
    if current is not None and previous is not None and current != previous:
        return odds_delta(current, previous), MovementType.RECENT

    recorded = last_recorded_movement.get(runner_id, 0.0)
    if recorded:
        return recorded, MovementType.HISTORICAL
    return 0.0, MovementType.NONE


def analyse_runner(
    runner_id: int,
    initial: Runner,
    *,
    last_known_odds: OddsMap,
    previous_odds: OddsMap,
    current_odds: OddsMap,
    last_recorded_movement: dict[int, float],
) -> RunnerAnalytics:
    initial_price = initial.odds
    last_known = last_known_odds.get(runner_id)

    final_price = initial_price
    if last_known is not None and last_known.odds is not None:
        final_price = last_known.odds

    is_non_runner = last_known is not None and not last_known.has_price

    last_movement, movement_type = _recent_movement(
        runner_id, previous_odds, current_odds, last_recorded_movement
    )

    live_price = _odds(current_odds.get(runner_id))
    display_price = live_price if live_price is not None else final_price

    return RunnerAnalytics(
        runner_id=runner_id,
        runner=RunnerData(
            name=initial.name,
            odds=display_price,
            event=initial.event,
            initial_odds=initial_price,
        ),
        movement=total_movement(initial_price, final_price),
        status=RunnerStatus.NON_RUNNER if is_non_runner else RunnerStatus.RUNNER,
        last_movement=last_movement,
        last_movement_type=movement_type,
    )


def compute_market_analytics(
    *,
    initial_odds: OddsMap,
    last_known_odds: OddsMap,
    previous_odds: OddsMap,
    current_odds: OddsMap,
    last_recorded_movement: dict[int, float],
    event_time_offset_hours: int = 1,
) -> dict[str, RaceGroup]:
    """Grouped analytics payload for every runner in the initial snapshot.

    Runners without an event or without a positive initial price never were
    valid selections and are left out.
    """
    grouped: dict[str, list[RunnerAnalytics]] = {}
    for runner_id, initial in initial_odds.items():
        if not initial.event or not initial.has_price:
            continue
        analytics = analyse_runner(
            runner_id,
            initial,
            last_known_odds=last_known_odds,
            previous_odds=previous_odds,
            current_odds=current_odds,
            last_recorded_movement=last_recorded_movement,
        )
        key = event_time_key(initial.event, event_time_offset_hours)
        grouped.setdefault(key, []).append(analytics)

    return {
        key: RaceGroup(runners=grouped[key], overround=compute_overround(grouped[key]))
        for key in sorted(grouped)
    }
