"""Odds tracker: owns the snapshot ledger, the live poll cache and the
published market state.

Readers never touch the mutable ledger. At the end of every successful poll
cycle the tracker builds a new frozen ``MarketState`` and swaps the reference,
so a request that grabbed the previous state keeps computing on a consistent
bundle.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from config import settings
from models.analytics import RaceGroup, RaceHistoryPayload
from models.runner import OddsMap, Snapshot
from services.analytics import compute_market_analytics
from services.errors import FetchFailure, InvalidQuery, StorageWriteFailure
from services.history import reconstruct_race_history
from services.ledger import Ledger
from services.live_cache import LivePollCache, detect_changes
from services.odds_source import HttpOddsSource, OddsSource
from services.snapshot_store import SnapshotStore
from utils.logger import poller_logger as logger
from utils.utcnow import race_date, snapshot_now, utcnow


@dataclass(frozen=True)
class MarketState:
    initial_odds: OddsMap = field(default_factory=dict)
    last_known_odds: OddsMap = field(default_factory=dict)
    last_recorded_movement: dict[int, float] = field(default_factory=dict)
    live: LivePollCache = field(default_factory=LivePollCache)
    updated_at: Optional[datetime] = None

    @property
    def previous_odds(self) -> OddsMap:
        return self.live.previous

    @property
    def current_odds(self) -> OddsMap:
        return self.live.current


@dataclass(frozen=True)
class PollResult:
    status: str  # completed | skipped | fetch_failed | write_failed | error
    runners: int = 0
    changes: int = 0
    snapshot: Optional[str] = None
    error: Optional[str] = None


class OddsTracker:
    def __init__(
        self,
        store: SnapshotStore,
        source: OddsSource,
        *,
        event_time_offset_hours: Optional[int] = None,
        date_offset_days: Optional[int] = None,
    ):
        self.store = store
        self.source = source
        self.event_time_offset_hours = (
            settings.EVENT_TIME_OFFSET_HOURS
            if event_time_offset_hours is None
            else event_time_offset_hours
        )
        self.date_offset_days = (
            settings.ODDS_DATE_OFFSET_DAYS if date_offset_days is None else date_offset_days
        )
        self._ledger = Ledger()
        self._state = MarketState()
        self._cycle_lock = asyncio.Lock()
        self._snapshot_count = 0
        self._last_poll_at: Optional[datetime] = None
        self._last_result: Optional[PollResult] = None

    @property
    def state(self) -> MarketState:
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._cycle_lock.locked()

    # ==================== STARTUP ====================

    def bootstrap(self) -> MarketState:
        """Replay the whole ledger from disk. Blocking; call before polling."""
        logger.info("Building market state from snapshot ledger", directory=str(self.store.directory))
        latest: OddsMap = {}
        count = 0

        def _stream():
            nonlocal latest, count
            for _ref, snapshot in self.store.iter_snapshots():
                count += 1
                latest = snapshot.runners
                yield snapshot

        self._ledger = Ledger.replay(_stream())
        self._snapshot_count = count

        if not count:
            logger.info("No previous odds files found. This is the first run.")

        initial, last_known, movements = self._ledger.copy_maps()
        # Live cache resumes from the most recent snapshot so the first poll
        # after a restart is compared against it.
        self._state = MarketState(
            initial_odds=initial,
            last_known_odds=last_known,
            last_recorded_movement=movements,
            live=LivePollCache(previous=dict(latest), current=dict(latest)),
            updated_at=self._ledger.last_timestamp,
        )
        return self._state

    # ==================== POLL CYCLE ====================

    async def poll_once(self) -> PollResult:
        """Run one poll cycle. Never raises; overlapping triggers are skipped."""
        if self._cycle_lock.locked():
            logger.warning("Previous poll cycle still running; skipping trigger")
            return PollResult(status="skipped")

        async with self._cycle_lock:
            try:
                result = await self._run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Error during odds polling", error=str(exc))
                result = PollResult(status="error", error=str(exc))
            self._last_result = result
            return result

    async def _run_cycle(self) -> PollResult:
        logger.info("Polling for odds changes...")
        self._last_poll_at = utcnow()
        state = self._state

        try:
            latest = await self.source.fetch_current_odds(race_date(self.date_offset_days))
        except FetchFailure as exc:
            logger.error("Odds fetch failed; live state unchanged", error=str(exc))
            return PollResult(status="fetch_failed", error=str(exc))

        if state.live.is_first_run:
            logger.info("Initial run. Storing current odds.", runners=len(latest))
            changes = []
        else:
            changes = detect_changes(state.live.current, latest)
            for change in changes:
                logger.info(
                    "Odds update",
                    runner=change.name,
                    previous=change.previous_odds,
                    current=change.current_odds,
                    event=change.event,
                )

        try:
            ref = await asyncio.to_thread(
                self.store.append, Snapshot(timestamp=snapshot_now(), runners=latest)
            )
        except StorageWriteFailure as exc:
            logger.error("Snapshot write failed; live state unchanged", error=str(exc))
            return PollResult(status="write_failed", runners=len(latest), error=str(exc))

        self._ledger.apply(Snapshot(timestamp=ref.timestamp, runners=latest))
        self._snapshot_count += 1
        initial, last_known, movements = self._ledger.copy_maps()
        self._state = MarketState(
            initial_odds=initial,
            last_known_odds=last_known,
            last_recorded_movement=movements,
            live=state.live.advance(latest),
            updated_at=ref.timestamp,
        )
        return PollResult(
            status="completed",
            runners=len(latest),
            changes=len(changes),
            snapshot=ref.name,
        )

    # ==================== READS ====================

    def get_market_analytics(self) -> dict[str, RaceGroup]:
        state = self._state
        return compute_market_analytics(
            initial_odds=state.initial_odds,
            last_known_odds=state.last_known_odds,
            previous_odds=state.previous_odds,
            current_odds=state.current_odds,
            last_recorded_movement=state.last_recorded_movement,
            event_time_offset_hours=self.event_time_offset_hours,
        )

    async def get_race_history(self, event_identifier: Optional[str]) -> RaceHistoryPayload:
        if event_identifier is None or not event_identifier.strip():
            raise InvalidQuery("eventIdentifier is required")
        return await asyncio.to_thread(reconstruct_race_history, self.store, event_identifier)

    def status(self) -> dict[str, Any]:
        state = self._state
        last = self._last_result
        return {
            "snapshot_dir": str(self.store.directory),
            "snapshots": self._snapshot_count,
            "initial_runners": len(state.initial_odds),
            "last_known_runners": len(state.last_known_odds),
            "live_runners": len(state.current_odds),
            "updated_at": state.updated_at.isoformat() if state.updated_at else None,
            "polling": self.is_polling,
            "last_poll_at": self._last_poll_at.isoformat() if self._last_poll_at else None,
            "last_result": last.status if last else None,
            "last_error": last.error if last else None,
        }


def create_odds_tracker() -> OddsTracker:
    """Tracker wired from settings: directory store + HTTP odds source."""
    return OddsTracker(SnapshotStore(settings.SNAPSHOT_DIR), HttpOddsSource())


# Singleton - shared by the API routes and the in-process poller
odds_tracker = create_odds_tracker()
