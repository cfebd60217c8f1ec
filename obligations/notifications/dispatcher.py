"""NotificationDispatcher — turns the urgency classification into one push."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from obligations.notifications.evaluator import (
    DUE_SOON_DAYS,
    PushKind,
    choose_push,
    classify,
    partition,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from obligations.models import ObligationInstance
    from obligations.notifications.router import NotificationRouter

logger = logging.getLogger(__name__)

_TAGS = {
    PushKind.OVERDUE: "overdue-items",
    PushKind.DUE_TODAY: "due-today",
}


def format_amount(instance: ObligationInstance) -> str:
    return f"{instance.item_name}: ${instance.amount:,.2f}"


def build_push(kind: PushKind, items: Sequence[ObligationInstance]) -> tuple[str, str, str]:
    """Return ``(title, body, tag)`` for a push about *items*."""
    count = len(items)
    if kind == PushKind.OVERDUE:
        title = "You have 1 overdue payment" if count == 1 else f"You have {count} overdue payments"
        fallback = "Check your pending payments"
    else:
        title = (
            "You have 1 payment due today" if count == 1 else f"You have {count} payments due today"
        )
        fallback = "Check today's payments"
    body = format_amount(items[0]) if count == 1 else fallback
    return title, body, _TAGS[kind]


class NotificationDispatcher:
    """Applies the push policy to a set of open instances.

    Args:
        router: NotificationRouter used for delivery.
        channel: Channel name override (None → router default).
        soon_days: Width of the due-soon window.
    """

    def __init__(
        self,
        router: NotificationRouter,
        *,
        channel: str | None = None,
        soon_days: int = DUE_SOON_DAYS,
    ) -> None:
        self._router = router
        self._channel = channel
        self._soon_days = soon_days

    async def notify(
        self, instances: Sequence[ObligationInstance], now: datetime
    ) -> PushKind | None:
        """Send at most one push for *instances*. Returns the kind sent."""
        if not self._router.has_permission(channel=self._channel):
            logger.debug("Skipping notifications: no push permission")
            return None

        stats = classify(instances, now, soon_days=self._soon_days)
        kind = choose_push(stats)
        if kind is None:
            return None

        buckets = partition(instances, now, soon_days=self._soon_days)
        items = buckets.overdue if kind == PushKind.OVERDUE else buckets.due_today
        title, body, tag = build_push(kind, items)
        sent = await self._router.send(title, body, tag=tag, channel=self._channel)
        if sent:
            logger.info("Sent %s notification for %d item(s)", kind, len(items))
            return kind
        logger.warning("Failed to deliver %s notification", kind)
        return None
