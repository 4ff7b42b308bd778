"""SchedulerEngine — APScheduler lifecycle for the periodic dispatch pass."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.config import settings

if TYPE_CHECKING:
    from src.scheduler.service import PassResult, ScheduleService

logger = logging.getLogger(__name__)

PASS_JOB_ID = "dispatch-pass"


class SchedulerEngine:
    """Fires one dispatch pass per interval, never two at once.

    A tick that arrives while the previous pass is still running is skipped,
    not queued.  ``stop()`` waits for an in-flight pass so the store is never
    left mid-write.

    Args:
        service: ScheduleService that owns the records and runs the pass.
        interval_seconds: Seconds between ticks (default from settings).
    """

    def __init__(
        self,
        service: ScheduleService,
        interval_seconds: int | None = None,
    ) -> None:
        self._service = service
        self._interval = interval_seconds or settings.dispatch_interval_seconds
        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._pass_lock = asyncio.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pass_in_flight(self) -> bool:
        return self._pass_lock.locked()

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register the interval job and start the scheduler."""
        if self._running:
            return
        self._scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self._interval, timezone=UTC),
            id=PASS_JOB_ID,
            name="Dispatch due messages",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info("Starting message scheduler (interval=%ds)", self._interval)

    async def stop(self) -> None:
        """Stop ticking, let an in-flight pass finish, then shut down.

        The scheduler's executor cancels running job coroutines on shutdown,
        so the pass must be awaited before ``shutdown()`` is called.
        """
        if self._running:
            self._scheduler.remove_job(PASS_JOB_ID)
        if self._pass_lock.locked():
            logger.info("Waiting for the in-flight pass to finish")
        async with self._pass_lock:
            pass
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    # -- Ticks -----------------------------------------------------------------

    async def tick(self) -> PassResult | None:
        """Run one pass. Returns None when a pass was already in flight."""
        if self._pass_lock.locked():
            logger.warning("Previous pass still running; skipping this tick")
            return None
        async with self._pass_lock:
            try:
                return await self._service.run_pass()
            except Exception:
                logger.exception("Dispatch pass failed")
                return None
