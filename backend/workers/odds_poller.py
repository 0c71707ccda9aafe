"""Odds poller: fixed-period trigger for the tracker's poll cycle.

Runs inside the API process (started from main.lifespan) because the live
poll cache is in-process state. It can also run standalone to only record
snapshots:
  python -m workers.odds_poller
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import time
from typing import Optional

_BACKEND = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND not in sys.path:
    sys.path.insert(0, _BACKEND)

from config import settings
from services.odds_tracker import OddsTracker, odds_tracker

logger = logging.getLogger("odds_poller")


class OddsPoller:
    """Drive ``tracker.poll_once`` every ``interval_seconds`` (fixed rate).

    Cycles never overlap: the loop awaits each cycle, and a cycle that
    overruns its slot delays the next trigger instead of running alongside it.
    """

    def __init__(
        self,
        tracker: OddsTracker,
        interval_seconds: Optional[int] = None,
        run_immediately: Optional[bool] = None,
    ):
        self.tracker = tracker
        self.interval_seconds = max(
            1, int(interval_seconds or settings.POLL_INTERVAL_SECONDS)
        )
        self.run_immediately = (
            settings.POLL_ON_STARTUP if run_immediately is None else run_immediately
        )
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.cycles_run = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start background poll loop (idempotent)."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="odds-poller")
        logger.info("Odds poller started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Odds poller stopped")

    async def _run_loop(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval_seconds)

        while True:
            started = time.monotonic()
            result = await self.tracker.poll_once()
            self.cycles_run += 1
            logger.info(
                "Poll cycle finished",
                extra={
                    "status": result.status,
                    "runners": result.runners,
                    "changes": result.changes,
                    "snapshot": result.snapshot,
                },
            )
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.interval_seconds - elapsed))


odds_poller = OddsPoller(odds_tracker)


async def main() -> None:
    logging.basicConfig(
        level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO")),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    await asyncio.to_thread(odds_tracker.bootstrap)
    try:
        await odds_poller._run_loop()
    except asyncio.CancelledError:
        logger.info("Odds poller shutting down")
    finally:
        close = getattr(odds_tracker.source, "close", None)
        if close is not None:
            await close()


if __name__ == "__main__":
    asyncio.run(main())
