from .runner import Runner, Snapshot, OddsMap
from .analytics import (
    RunnerStatus,
    MovementType,
    RunnerData,
    RunnerAnalytics,
    RaceGroup,
    HistoryPoint,
    RunnerHistory,
    RaceHistoryPayload,
)

__all__ = [
    "Runner",
    "Snapshot",
    "OddsMap",
    "RunnerStatus",
    "MovementType",
    "RunnerData",
    "RunnerAnalytics",
    "RaceGroup",
    "HistoryPoint",
    "RunnerHistory",
    "RaceHistoryPayload",
]
