"""Two most recent live poll states and change detection between them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from models.runner import OddsMap


@dataclass(frozen=True)
class OddsChange:
    runner_id: int
    name: str
    event: str
    previous_odds: Optional[float]
    current_odds: Optional[float]


def _comparable(odds: Optional[float]) -> float:
    # Missing odds compare as 0.0; never used for display.
    return odds if odds is not None else 0.0


def detect_changes(previous: OddsMap, latest: OddsMap) -> list[OddsChange]:
    """Runners in both maps whose price changed. Empty on a first run."""
    if not previous:
        return []

    changes: list[OddsChange] = []
    for runner_id, runner in latest.items():
        before = previous.get(runner_id)
        if before is None:
            continue
        if _comparable(before.odds) != _comparable(runner.odds):
            changes.append(
                OddsChange(
                    runner_id=runner_id,
                    name=runner.name,
                    event=runner.event,
                    previous_odds=before.odds,
                    current_odds=runner.odds,
                )
            )
    return changes


@dataclass(frozen=True)
class LivePollCache:
    previous: OddsMap = field(default_factory=dict)
    current: OddsMap = field(default_factory=dict)

    @property
    def is_first_run(self) -> bool:
        return not self.current

    def advance(self, latest: OddsMap) -> "LivePollCache":
        """Cache after a successful poll: current slides into previous."""
        return LivePollCache(previous=self.current, current=dict(latest))
