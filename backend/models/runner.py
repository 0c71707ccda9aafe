from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
import math


def _coerce_odds(raw: object) -> Optional[float]:
    """Decimal price from a feed value; anything unusable becomes None."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _first_present(data: dict, *keys: str) -> object:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


class Runner(BaseModel):
    """A race entrant and its current decimal price.

    ``odds`` is None (or <= 0) when the runner is not a live betting
    selection, i.e. a non-runner or withdrawn horse.
    """

    model_config = ConfigDict(frozen=True)

    runner_id: int
    name: str = ""
    event: str = ""  # "dd-MM-yyyy HH:mm <venue>" race identity
    odds: Optional[float] = None

    @property
    def has_price(self) -> bool:
        return self.odds is not None and self.odds > 0

    @classmethod
    def from_api_response(cls, data: dict) -> "Runner":
        """Parse a runner from the odds source payload"""
        runner_id = _first_present(data, "runnerId", "runner_id", "selectionId", "id")
        if runner_id is None:
            raise ValueError("runner payload has no runner id")
        name = _first_present(data, "name", "runnerName") or ""
        event = _first_present(data, "event", "eventName") or ""
        odds = _coerce_odds(_first_present(data, "odds", "price", "lastPriceTraded"))
        return cls(
            runner_id=int(runner_id),
            name=str(name).strip(),
            event=str(event).strip(),
            odds=odds,
        )


OddsMap = dict[int, Runner]


class Snapshot(BaseModel):
    """All runners' odds captured at one polling instant."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    runners: dict[int, Runner] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.runners
