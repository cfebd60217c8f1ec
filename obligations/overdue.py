"""OverdueTransitioner — moves pending instances past their due day to overdue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from obligations.dates import is_past_due
from obligations.models import InstanceStatus

if TYPE_CHECKING:
    from datetime import datetime

    from obligations.instances import ObligationStore
    from obligations.models import ObligationInstance

logger = logging.getLogger(__name__)


class OverdueTransitioner:
    """Sweeps pending instances into ``overdue``.

    Only ``pending`` instances are loaded, so ``paid`` and already
    ``overdue`` ones are never touched and re-running a sweep is a no-op.
    """

    def __init__(self, store: ObligationStore) -> None:
        self._store = store

    async def sweep(self, now: datetime) -> list[ObligationInstance]:
        """Mark every pending instance whose due day ended before *now*.

        Returns the instances that changed.  A failed update is logged and
        the sweep moves on to the next instance.
        """
        pending = await self._store.list_by_status([InstanceStatus.PENDING])
        changed = []
        for instance in pending:
            if not is_past_due(instance.due_date, now):
                continue
            try:
                await self._store.set_status(instance, InstanceStatus.OVERDUE)
            except Exception:
                logger.exception(
                    "Failed to mark instance overdue: '%s' (%s)",
                    instance.item_name,
                    instance.id,
                )
                continue
            changed.append(instance)
        if changed:
            logger.info("Marked %d instance(s) overdue", len(changed))
        return changed
