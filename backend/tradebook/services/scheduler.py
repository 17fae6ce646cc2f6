"""
Task Scheduler
Nightly rebuild of the daily P&L report.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional

from tradebook.pnl.domain import RebuildSummary
from tradebook.pnl.rebuild import DatabaseUnavailableError, PnlRebuilder

logger = logging.getLogger(__name__)


def next_run_at(now: datetime, hour_utc: int) -> datetime:
    """Next occurrence of HH:00 UTC strictly after `now`."""
    now = now.astimezone(timezone.utc)
    candidate = now.replace(hour=hour_utc, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def lookback_window(today: date, days: int) -> tuple[date, date]:
    """The `days` calendar days ending yesterday."""
    end_day = today - timedelta(days=1)
    return end_day - timedelta(days=days - 1), end_day


class TaskScheduler:
    """
    Periodic task runner. Currently a single job: rebuild the last N days of
    pl_report_daily once a day at a fixed UTC hour.
    """

    def __init__(
        self,
        rebuilder: PnlRebuilder,
        *,
        hour_utc: int = 1,
        lookback_days: int = 1,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._rebuilder = rebuilder
        self._hour_utc = hour_utc
        self._lookback_days = lookback_days
        self._clock = clock
        self._tasks: List[asyncio.Task] = []
        self._running = False
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start the scheduler loop."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        logger.info("✅ Task scheduler started")
        self._tasks.append(asyncio.create_task(self._nightly_rebuild_loop()))

    async def stop(self):
        """Stop and await every task."""
        if not self._running:
            return

        self._running = False
        for task in self._tasks:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._tasks.clear()
        logger.info("✅ Task scheduler stopped")

    # ═══════════════════════════════════════════════════════════
    # NIGHTLY REBUILD TASK
    # ═══════════════════════════════════════════════════════════

    async def _nightly_rebuild_loop(self):
        logger.info("📊 Nightly P&L rebuild task started")

        try:
            while self._running:
                now = self._clock()
                target = next_run_at(now, self._hour_utc)
                wait_sec = (target - now).total_seconds()
                logger.info(
                    f"📊 Next P&L rebuild in {wait_sec/3600:.1f} hours "
                    f"(at {target.strftime('%Y-%m-%d %H:%M:%S UTC')})"
                )

                await asyncio.sleep(wait_sec)
                if not self._running:
                    break

                await self.run_once()

        except asyncio.CancelledError:
            logger.info("📊 Nightly P&L rebuild task cancelled")

    async def run_once(self, today: Optional[date] = None) -> Optional[RebuildSummary]:
        """
        Rebuild the lookback window ending yesterday in a worker thread.
        Runs are serialized; a fatal DB error is logged and the loop keeps going.
        """
        today = today or self._clock().date()
        start_day, end_day = lookback_window(today, self._lookback_days)

        async with self._lock:
            try:
                summary = await asyncio.to_thread(self._rebuilder.rebuild_range, start_day, end_day)
            except DatabaseUnavailableError as e:
                logger.error(f"📊 Nightly P&L rebuild {start_day} → {end_day} aborted: {e}")
                return None

        if summary.errors:
            logger.warning(f"📊 Nightly P&L rebuild finished with {len(summary.errors)} error(s)")
        return summary
