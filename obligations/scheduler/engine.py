"""SchedulerEngine — APScheduler triggers that call the runner."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from obligations.config import settings

if TYPE_CHECKING:
    from obligations.scheduler.runner import SchedulerRunner

logger = logging.getLogger(__name__)

STARTUP_JOB_ID = "startup-cycle"
PERIODIC_JOB_ID = "periodic-cycle"


class SchedulerEngine:
    """Drives a SchedulerRunner from APScheduler for the life of a session.

    On the first ``start()`` a one-shot job fires shortly after startup;
    every ``start()`` adds the periodic job.  Both simply call
    ``runner.run()``, so the runner's guard decides whether a cycle happens.

    Args:
        runner: The session's SchedulerRunner.
        timezone: IANA timezone string (default from settings).
        interval_seconds: Period of the timer (default from settings).
        startup_delay: Seconds before the startup cycle (default from settings).
    """

    def __init__(
        self,
        runner: SchedulerRunner,
        timezone: str | None = None,
        interval_seconds: float | None = None,
        startup_delay: float | None = None,
    ) -> None:
        self._runner = runner
        self._timezone = timezone or settings.scheduler_timezone
        self._interval = interval_seconds or settings.scheduler_interval_seconds
        self._startup_delay = (
            settings.scheduler_startup_delay_seconds if startup_delay is None else startup_delay
        )
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._running = False
        self._startup_fired = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register the triggers and start the scheduler."""
        if self._running:
            return
        if not self._startup_fired:
            run_at = datetime.now(ZoneInfo(self._timezone)) + timedelta(
                seconds=self._startup_delay
            )
            self._scheduler.add_job(
                self._run_cycle,
                trigger=DateTrigger(run_date=run_at, timezone=self._timezone),
                id=STARTUP_JOB_ID,
                args=["startup"],
                misfire_grace_time=None,
                replace_existing=True,
            )
            self._startup_fired = True
        self._scheduler.add_job(
            self._run_cycle,
            trigger=IntervalTrigger(seconds=self._interval, timezone=self._timezone),
            id=PERIODIC_JOB_ID,
            args=["interval"],
            coalesce=True,
            max_instances=1,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info(
            "Scheduler started (interval=%ss, startup delay=%ss, tz=%s)",
            self._interval,
            self._startup_delay,
            self._timezone,
        )

    async def stop(self) -> None:
        """Shut down the scheduler. The startup job never fires again."""
        if self._running:
            self._scheduler.remove_all_jobs()
            self._scheduler.shutdown(wait=False)
            # shutdown completes on the event loop; restart on a fresh scheduler
            self._scheduler = AsyncIOScheduler(timezone=self._timezone)
            self._running = False
            logger.info("Scheduler stopped")

    # -- Internal --------------------------------------------------------------

    async def _run_cycle(self, trigger: str) -> None:
        """Callback invoked by APScheduler."""
        logger.debug("Scheduler trigger fired: %s", trigger)
        await self._runner.run()
