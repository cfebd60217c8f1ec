"""SchedulerRunner — one guarded cycle of generate-then-sweep.

Every trigger site (startup, the periodic timer, template edits, callers
that want fresh data) calls ``run()`` on the same runner instance.  The
guard lives on that instance:

- a call while a cycle is in flight returns at once without queueing;
- at most ``session_cap`` cycles execute per runner (one session);
- a cycle is refused until ``min_interval`` seconds have passed since the
  *start* of the previous executed cycle.

Refused calls return None.  Cancellation is not supported: once a cycle
has started it runs to completion.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from obligations.config import settings

if TYPE_CHECKING:
    from collections.abc import Callable

    from obligations.instances import ObligationStore
    from obligations.notifications.dispatcher import NotificationDispatcher
    from obligations.overdue import OverdueTransitioner
    from obligations.templates import TemplateStore

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class CycleReport:
    """What one executed cycle did."""

    started_at: datetime
    generated: int = 0
    skipped_templates: list[str] = field(default_factory=list)
    failed_templates: list[str] = field(default_factory=list)
    marked_overdue: int = 0
    notification: str | None = None


class SchedulerRunner:
    """Runs scheduler cycles for one owner, at most one at a time.

    Args:
        templates: TemplateStore for the owner.
        instances: ObligationStore for the owner.
        transitioner: OverdueTransitioner over the same instances.
        dispatcher: Optional NotificationDispatcher applied after the sweep.
        min_interval: Seconds between cycle starts (default from settings).
        session_cap: Max cycles for this runner; None disables the cap
            (default from settings).
        clock: Monotonic clock used for the interval check.
        now: Returns the wall-clock ``now`` captured once per cycle.
    """

    def __init__(
        self,
        templates: TemplateStore,
        instances: ObligationStore,
        transitioner: OverdueTransitioner,
        *,
        dispatcher: NotificationDispatcher | None = None,
        min_interval: float | None = None,
        session_cap: int | None | object = _UNSET,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._templates = templates
        self._instances = instances
        self._transitioner = transitioner
        self._dispatcher = dispatcher
        self._min_interval = (
            settings.scheduler_min_interval_seconds if min_interval is None else min_interval
        )
        self._session_cap = settings.session_cap() if session_cap is _UNSET else session_cap
        self._clock = clock
        self._now = now or self._default_now

        self._in_flight = False
        self._last_started: float | None = None
        self._runs = 0

    @staticmethod
    def _default_now() -> datetime:
        return datetime.now(ZoneInfo(settings.scheduler_timezone))

    # -- Guard state -----------------------------------------------------------

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def runs(self) -> int:
        """Cycles executed so far in this session."""
        return self._runs

    def _refusal(self, started: float) -> str | None:
        if self._in_flight:
            return "a cycle is already running"
        if self._session_cap is not None and self._runs >= self._session_cap:
            return f"session cap of {self._session_cap} cycle(s) reached"
        if self._last_started is not None and started - self._last_started < self._min_interval:
            return f"less than {self._min_interval:g}s since the last cycle started"
        return None

    # -- Entry point -----------------------------------------------------------

    async def run(self) -> CycleReport | None:
        """Run one cycle unless the guard refuses.

        Returns the CycleReport, or None when refused or when the cycle
        failed (the failure is logged).
        """
        started = self._clock()
        reason = self._refusal(started)
        if reason is not None:
            logger.debug("Scheduler cycle skipped: %s", reason)
            return None

        # No await between the guard check and here, so no other caller
        # can slip in.
        self._in_flight = True
        self._last_started = started
        self._runs += 1
        try:
            return await self._cycle(self._now())
        except Exception:
            logger.exception("Scheduler cycle failed")
            return None
        finally:
            self._in_flight = False

    async def _cycle(self, now: datetime) -> CycleReport:
        logger.info(
            "Scheduler cycle %d started for owner %s", self._runs, self._templates.owner_id
        )
        report = CycleReport(started_at=now)

        for template in await self._templates.list_active():
            if template.is_daily:
                continue
            try:
                if await self._instances.has_pending(template.id):
                    report.skipped_templates.append(template.id)
                    continue
                created = await self._instances.generate_for_template(template, now)
                report.generated += len(created)
            except Exception:
                logger.exception(
                    "Instance generation failed for template '%s' (%s)",
                    template.name,
                    template.id,
                )
                report.failed_templates.append(template.id)

        report.marked_overdue = len(await self._transitioner.sweep(now))

        if self._dispatcher is not None:
            active = await self._instances.list_active()
            kind = await self._dispatcher.notify(active, now)
            report.notification = str(kind) if kind is not None else None

        logger.info(
            "Scheduler cycle %d finished: %d generated, %d overdue, %d failed",
            self._runs,
            report.generated,
            report.marked_overdue,
            len(report.failed_templates),
        )
        return report
