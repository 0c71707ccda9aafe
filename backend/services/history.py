"""Rebuild a race's per-runner price history from the snapshot ledger."""

from __future__ import annotations

from models.analytics import HistoryPoint, RaceHistoryPayload, RunnerHistory
from services.errors import CorruptSnapshotError
from services.snapshot_store import SnapshotStore
from utils.logger import get_logger

logger = get_logger("history")


def reconstruct_race_history(store: SnapshotStore, event_identifier: str) -> RaceHistoryPayload:
    """Ordered (timestamp, odds) series for every priced runner of one event.

    The event must match the runner's ``event`` field exactly. Snapshots are
    ordered by the timestamp parsed from their key, not by listing order.
    """
    dated = []
    for ref in store.list_snapshots():
        if ref.timestamp is None:
            logger.warning("Could not parse timestamp from snapshot name", snapshot=ref.name)
            continue
        dated.append(ref)
    dated.sort(key=lambda ref: ref.timestamp)

    histories: dict[int, RunnerHistory] = {}
    for ref in dated:
        try:
            snapshot = store.load(ref)
        except CorruptSnapshotError as exc:
            logger.warning("Could not parse history from snapshot", snapshot=ref.name, error=exc.reason)
            continue

        for runner_id, runner in snapshot.runners.items():
            if runner.event != event_identifier or not runner.has_price:
                continue
            history = histories.get(runner_id)
            if history is None:
                history = RunnerHistory(runner_id=runner_id, runner_name=runner.name)
                histories[runner_id] = history
            elif history.runner_name != runner.name:
                history.runner_name = runner.name
            history.history.append(HistoryPoint(timestamp=ref.timestamp, odds=runner.odds))

    return RaceHistoryPayload(
        event_identifier=event_identifier,
        runners_history=list(histories.values()),
    )
