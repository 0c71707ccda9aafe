from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from enum import Enum


class RunnerStatus(str, Enum):
    RUNNER = "RUNNER"
    NON_RUNNER = "NON_RUNNER"  # Last known price absent or <= 0


class MovementType(str, Enum):
    """Where a runner's ``last_movement`` came from.

    - RECENT: difference between the two most recent live polls
    - HISTORICAL: last non-zero delta recorded anywhere in the snapshot ledger
    - NONE: no movement observed
    """

    NONE = "NONE"
    RECENT = "RECENT"
    HISTORICAL = "HISTORICAL"


class _CamelModel(BaseModel):
    """Response models are published with camelCase keys for the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunnerData(_CamelModel):
    name: str
    odds: float  # Display odds: live price, else last known price
    event: str
    initial_odds: float


class RunnerAnalytics(_CamelModel):
    runner_id: int
    runner: RunnerData
    movement: float  # final - initial, 2dp half-up
    status: RunnerStatus
    last_movement: float = 0.0
    last_movement_type: MovementType = MovementType.NONE


class RaceGroup(_CamelModel):
    runners: list[RunnerAnalytics] = Field(default_factory=list)
    overround: float = 0.0


class HistoryPoint(_CamelModel):
    timestamp: datetime
    odds: float


class RunnerHistory(_CamelModel):
    runner_id: int
    runner_name: str
    history: list[HistoryPoint] = Field(default_factory=list)


class RaceHistoryPayload(_CamelModel):
    event_identifier: str
    runners_history: list[RunnerHistory] = Field(default_factory=list)
