"""Ledger replay: fold the ordered snapshot sequence into derived odds maps.

The fold is a single forward pass with an accumulator. ``Ledger.apply`` is the
step function used both for the startup replay and for extending the ledger
after each successful poll, so replaying N snapshots at once and applying
them one by one produce the same state.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from models.runner import OddsMap, Snapshot
from utils.logger import ledger_logger as logger


def odds_delta(current: float, previous: float) -> float:
    """current - previous without binary floating point noise (2.3 - 2.1 == 0.2)."""
    return float(Decimal(str(current)) - Decimal(str(previous)))


class Ledger:
    def __init__(self) -> None:
        self.initial_odds: OddsMap = {}
        self.last_known_odds: OddsMap = {}
        self.last_recorded_movement: dict[int, float] = {}
        self.snapshots_applied = 0
        self.last_timestamp: Optional[datetime] = None

    def apply(self, snapshot: Snapshot) -> None:
        """Fold one snapshot (must be newer than everything applied so far)."""
        runners = snapshot.runners
        # The first snapshot is the baseline even when empty (an unreadable
        # file loads as an empty capture).
        if self.snapshots_applied == 0:
            self.initial_odds = dict(runners)
        self.snapshots_applied += 1
        self.last_timestamp = snapshot.timestamp

        # last_known_odds doubles as the rolling "previous snapshot" map: before
        # the merge below it holds every runner's last-seen entry.
        for runner_id, runner in runners.items():
            previous = self.last_known_odds.get(runner_id)
            if (
                previous is not None
                and previous.odds is not None
                and runner.odds is not None
                and runner.odds != previous.odds
            ):
                self.last_recorded_movement[runner_id] = odds_delta(runner.odds, previous.odds)

        self.last_known_odds.update(runners)

    @classmethod
    def replay(cls, snapshots: Iterable[Snapshot]) -> "Ledger":
        ledger = cls()
        for snapshot in snapshots:
            ledger.apply(snapshot)
        logger.info(
            "Ledger replay complete",
            snapshots=ledger.snapshots_applied,
            initial_runners=len(ledger.initial_odds),
            last_known_runners=len(ledger.last_known_odds),
            recorded_movements=len(ledger.last_recorded_movement),
        )
        return ledger

    def copy_maps(self) -> tuple[OddsMap, OddsMap, dict[int, float]]:
        """Shallow copies safe to hand to readers while the ledger keeps growing."""
        return (
            dict(self.initial_odds),
            dict(self.last_known_odds),
            dict(self.last_recorded_movement),
        )
